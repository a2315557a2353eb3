"""
SSL context creation for the aiokafka engine.
"""

from __future__ import annotations

import ssl
from typing import Any

from kafcat.messaging.client_config import ClientParams


def build_ssl_context(params: ClientParams) -> ssl.SSLContext:
    """
    Load the CA, client certificate and key named in `params`.

    Raises:
        OSError / ssl.SSLError: Unreadable or invalid TLS material
    """
    context = ssl.create_default_context()
    if params.ssl_cafile:
        context.load_verify_locations(params.ssl_cafile)
    if params.ssl_certfile and params.ssl_keyfile:
        context.load_cert_chain(
            certfile=params.ssl_certfile,
            keyfile=params.ssl_keyfile,
        )
    return context


def client_kwargs(params: ClientParams) -> dict[str, Any]:
    """aiokafka client keyword arguments, with an SSL context when needed."""
    kwargs = params.to_aiokafka()
    if params.ssl_cafile:
        kwargs["ssl_context"] = build_ssl_context(params)
    return kwargs
