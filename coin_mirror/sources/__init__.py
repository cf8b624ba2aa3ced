from .coingecko import CoinGeckoSource, TOP_PAGE_SIZE

__all__ = ["CoinGeckoSource", "TOP_PAGE_SIZE"]
