"""Jupiter swap execution on Solana: quote, build, sign, submit, confirm."""

__version__ = "0.1.0"
