"""
Configuration management for Modflow.

- **app_configuration.py**: File-locked YAML configuration loader exposing the
  AI service settings, moderation thresholds and storage locations. Falls back
  to defaults on missing or malformed config files.
- **ai_settings.py** / **moderation_settings.py**: Typed accessors over the
  ``ai_settings`` and ``moderation`` sections.
"""
