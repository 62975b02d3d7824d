from .explorer_config import DEFAULTS, UNIT_SYSTEMS, ExplorerConfig

__all__ = ["DEFAULTS", "UNIT_SYSTEMS", "ExplorerConfig"]
