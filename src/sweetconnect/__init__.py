"""
sweetconnect -- two-party message routing with real-time delivery.

Routes messages between role-bound actors, pushes them to live WebSocket
connections, and sends e-mail notifications in the background.
"""

__version__ = "0.1.0"
