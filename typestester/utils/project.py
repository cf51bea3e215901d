import os

from typestester.settings import Settings

ENVVAR = "TYPESTESTER_SETTINGS_MODULE"


def get_project_settings() -> Settings:
    """Return the default settings updated with the module named by the
    ``TYPESTESTER_SETTINGS_MODULE`` environment variable, if any."""
    settings = Settings()
    settings_module_path = os.environ.get(ENVVAR)
    if settings_module_path:
        settings.setmodule(settings_module_path, priority="project")
    return settings
