from config.settings import SaleSettings, load_settings

__all__ = ["SaleSettings", "load_settings"]
