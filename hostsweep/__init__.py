"""hostsweep: LAN host discovery with batched probing and cooperative cancellation."""

__version__ = "0.1.0"
