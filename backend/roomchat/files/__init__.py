"""File upload module.

Stores uploaded bytes on local disk and hands back a public URL. Chat events
(file messages, room backgrounds, avatars) only ever carry that URL.
"""
