import sys
from os import environ
from logging import StreamHandler, Logger
from colorlog import ColoredFormatter


class SingletonMeta(type):
    _instance = {}

    def __call__(cls, *args, **kwargs):
        if cls not in cls._instance:
            instance = super().__call__(*args, **kwargs)
            cls._instance[cls] = instance
        return cls._instance[cls]


class RemoteConfigLogger(Logger, metaclass=SingletonMeta):
    _initialized = False

    def __init__(self):
        if RemoteConfigLogger._initialized:
            return

        super().__init__(name="RemoteConfigLogger", level=environ.get("LOG_LEVEL", "NOTSET").upper())

        local_formatter = ColoredFormatter(
            "%(log_color)s%(asctime)s | %(levelname)-8s | %(module)s | %(message)s",
            datefmt="%Y-%m-%d %H:%M:%S",
            reset=True,
            log_colors={
                "DEBUG": "blue",
                "INFO": "",
                "WARNING": "yellow",
                "ERROR": "red",
                "CRITICAL": "bold_red",
            },
        )

        console_handler = StreamHandler(stream=sys.stderr)
        console_handler.setFormatter(local_formatter)
        self.addHandler(console_handler)

        RemoteConfigLogger._initialized = True

    def set_level_name(self, level_name: str) -> None:
        """Apply a level given by name, e.g. from settings."""
        self.setLevel(level_name.upper())


logger = RemoteConfigLogger()
