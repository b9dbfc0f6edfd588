from pathlib import Path


class AppState:
    """Options given on the command line, shared by every command."""

    def __init__(self):
        self.verbose_mode: bool = False
        self.config_path: Path | None = None


APP_STATE = AppState()
