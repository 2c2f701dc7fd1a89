from kio.settings.recent import MAX_RECENT_FILES, RecentFileEntry, RecentFilesTracker
from kio.settings.store import EditorSettings, SettingsError, SettingsPatch, SettingsStore, default_settings_path

__all__ = [
    "MAX_RECENT_FILES",
    "EditorSettings",
    "RecentFileEntry",
    "RecentFilesTracker",
    "SettingsError",
    "SettingsPatch",
    "SettingsStore",
    "default_settings_path",
]
