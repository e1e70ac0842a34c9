"""Protobuf encoding of Solana Geyser updates, a bounded replay channel, configuration and metrics."""

__version__ = "0.1.0"