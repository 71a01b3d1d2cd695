"""nftbot - scheduled NFT marketplace sync and tweet bot."""

__version__ = "0.1.0"
