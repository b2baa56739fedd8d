"""Stored document and avatar serving.

Files live flat under a single uploads root. Two tiers:
    - admin-only-document: expert verification documents, admins only.
    - public-avatar: expert avatar images, no authentication.

The avatar tier serves any image file under the uploads root whose name is
known; there is no per-expert approval check at this layer.
"""
