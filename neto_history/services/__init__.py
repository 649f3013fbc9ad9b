"""
Services for the order history widget.

- order_digest: upstream fetch and normalization
- digest_cache: freshness-gated, single-flight digest cache
- oauth_service: Neto authorization-code handshake
- tenant: store domain resolution
"""
