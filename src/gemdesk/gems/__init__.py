"""Gem roster and drive-folder link resolution."""
