"""
Translated user-facing messages.

Tables are plain mappings; ``load_locale`` returns a read-only view that
callers pass to whichever component needs translated strings.
"""

from types import MappingProxyType

DEFAULT_LANGUAGE = 'en'

MESSAGES = {
    'en': {
        'build_started': "Compiling site from {content}",
        'files_found': "Found {count} content files",
        'build_completed': "Site build completed in {seconds:.3f} seconds.",
        'pages_generated': "Total pages generated: {count}",
        'artifacts_generated': "Total artifacts generated: {count}",
        'removing_output': "Removing existing output directory {path}",
        'skipping_entry': "Skipping {path}: {reason}",
        'no_content': "No content files found in {path}",
        'server_running': "Serving {root} at http://{address}",
        'server_stopped': "Server stopped.",
    },
    'fr': {
        'build_started': "Compilation du site depuis {content}",
        'files_found': "{count} fichiers de contenu trouvés",
        'build_completed': "Génération du site terminée en {seconds:.3f} secondes.",
        'pages_generated': "Nombre total de pages générées : {count}",
        'artifacts_generated': "Nombre total d'artefacts générés : {count}",
        'removing_output': "Suppression du répertoire de sortie existant {path}",
        'skipping_entry': "{path} ignoré : {reason}",
        'no_content': "Aucun fichier de contenu trouvé dans {path}",
        'server_running': "Service de {root} sur http://{address}",
        'server_stopped': "Serveur arrêté.",
    },
    'de': {
        'build_started': "Website wird aus {content} kompiliert",
        'files_found': "{count} Inhaltsdateien gefunden",
        'build_completed': "Website-Erstellung in {seconds:.3f} Sekunden abgeschlossen.",
        'pages_generated': "Insgesamt erzeugte Seiten: {count}",
        'artifacts_generated': "Insgesamt erzeugte Artefakte: {count}",
        'removing_output': "Vorhandenes Ausgabeverzeichnis {path} wird entfernt",
        'skipping_entry': "{path} wird übersprungen: {reason}",
        'no_content': "Keine Inhaltsdateien in {path} gefunden",
        'server_running': "{root} wird unter http://{address} bereitgestellt",
        'server_stopped': "Server angehalten.",
    },
}


class Locale:
    """Message table for one language with English fallback per key."""

    def __init__(self, language=DEFAULT_LANGUAGE):
        code = (language or DEFAULT_LANGUAGE).split('-')[0].split('_')[0].lower()
        self.language = code if code in MESSAGES else DEFAULT_LANGUAGE
        self.messages = MappingProxyType(MESSAGES[self.language])

    def translate(self, key, **kwargs):
        template = self.messages.get(key) or MESSAGES[DEFAULT_LANGUAGE].get(key, key)
        return template.format(**kwargs) if kwargs else template

    def __getitem__(self, key):
        return self.translate(key)


def load_locale(language=DEFAULT_LANGUAGE):
    return Locale(language)


def available_languages():
    return sorted(MESSAGES)
