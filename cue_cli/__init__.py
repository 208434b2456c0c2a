"""
Cue CLI - Command-line control for a running show.

Sends run-show commands to a RunShowService over MQTT and reads back its
retained status.

Usage:
    cue-cli --show-id hamlet_tech start
    cue-cli --show-id hamlet_tech hold
    cue-cli --show-id hamlet_tech goto-page 42
    cue-cli --show-id hamlet_tech status --wait 3
"""

__version__ = "1.0.0"
