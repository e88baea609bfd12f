"""Platform configuration-as-code client core.

Key Responsibilities:
    - Provide a resilient HTTP transport with bounded concurrency, retries,
      rate limiting and request/response listeners
    - Provide resource clients that reconcile desired state against an
      eventually consistent, privilege-gated management API
    - Export the client factory used to assemble both

Collaborators:
    - Upstream: configuration-as-code tooling embedding this library
    - Downstream: the platform and classic REST APIs

Side Effects:
    - None on import beyond Prometheus collector registration

Thread Safety:
    - Thread-safe: transports and clients may be shared across threads

Example:
    >>> from Platform_CaC import ClientFactory
    >>> factory = ClientFactory().with_platform_url(url).with_platform_token(token)
    >>> factory.bucket_client().upsert("logs", {"table": "logs", "retentionDays": 35})
"""

from .factory import ClientFactory

__version__ = "0.1.0"

__all__ = ["ClientFactory", "__version__"]
