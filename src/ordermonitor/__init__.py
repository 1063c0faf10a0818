"""Real-time order monitor: reconciles pushed order, cart, customer and voucher events into one view."""

__version__ = "0.1.0"
