"""
HTTP surface of the signaling service.
"""
