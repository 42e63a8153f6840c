"""LaptopPOS Realtime — live data-invalidation layer for LaptopPOS.

Pushes data_update events from the server to every open browser tab of a
tenant, and on the client side turns those events into cache invalidations
and short toast notifications.
"""

__version__ = "0.1.0"
