"""TermRoute: routes terminal input to the shell or to an AI assistant."""

__version__ = "0.1.0"
