"""watchdogctl -- CI test failure context collector and result extractor."""

__version__ = "0.3.0"
