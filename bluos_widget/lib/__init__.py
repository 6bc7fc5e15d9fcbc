"""
Shared plumbing for the BluOS widget: config, transport, status decoding,
artwork and time formatting.
"""
