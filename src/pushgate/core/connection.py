"""TLS connections to the push gateway.

Connections are plain blocking TLS streams built with pyOpenSSL. Readiness
is checked with ``select`` on the underlying socket, after first consulting
the TLS layer for already decrypted bytes.
"""

from __future__ import annotations

import contextlib
import logging
import select
import socket
import time
from typing import Final

from cryptography import x509
from cryptography.exceptions import UnsupportedAlgorithm
from cryptography.hazmat.primitives import serialization
from OpenSSL import SSL

__all__ = [
    "GATEWAY_HOST",
    "GATEWAY_PORT",
    "SANDBOX_GATEWAY_HOST",
    "GatewayConnectionError",
    "TLSConnection",
    "TLSConnectionProvider",
    "gateway_address",
]

logger = logging.getLogger(__name__)

GATEWAY_HOST: Final[str] = "gateway.push.apple.com"
SANDBOX_GATEWAY_HOST: Final[str] = "gateway.sandbox.push.apple.com"
GATEWAY_PORT: Final[int] = 2195


class GatewayConnectionError(OSError):
    """Raised when a gateway connection cannot be opened or used."""


def gateway_address(sandbox: bool, host: str | None = None, port: int = GATEWAY_PORT) -> tuple[str, int]:
    """Resolve the (host, port) to connect to.

    Args:
        sandbox: Whether to target the sandbox endpoint
        host: Explicit host overriding the default endpoint
        port: Gateway port

    Returns:
        Address tuple for ``socket.create_connection``
    """
    if host is None:
        host = SANDBOX_GATEWAY_HOST if sandbox else GATEWAY_HOST
    return host, port


class TLSConnection:
    """Connection protocol implementation over a pyOpenSSL connection."""

    def __init__(self, sock: socket.socket, tls: SSL.Connection, *, read_timeout: float = 1.0) -> None:
        self._sock: socket.socket = sock
        self._tls: SSL.Connection = tls
        self._read_timeout: float = read_timeout
        self._closed: bool = False

    @property
    def closed(self) -> bool:
        return self._closed

    def write(self, data: bytes) -> None:
        if self._closed:
            raise GatewayConnectionError("Connection is closed")
        try:
            _ = self._tls.sendall(data)
        except SSL.Error as exc:
            raise GatewayConnectionError(f"TLS write failed: {exc}") from exc

    def flush(self) -> None:
        # sendall hands every byte to the kernel; there is no userspace buffer.
        return None

    def poll_readable(self, timeout: float | None = 0.0) -> bool:
        if self._closed:
            return False
        deadline = None if timeout is None else time.monotonic() + timeout
        while True:
            if self._tls.pending():
                return True
            remaining = None if deadline is None else max(0.0, deadline - time.monotonic())
            readable, _, _ = select.select([self._sock], [], [], remaining)
            if not readable:
                return False
            if self._has_application_data():
                return True

    def _has_application_data(self) -> bool:
        # TLS 1.3 session tickets make the socket readable without carrying data.
        self._sock.setblocking(False)
        try:
            _ = self._tls.recv(1, socket.MSG_PEEK)
        except SSL.WantReadError:
            return False
        except SSL.Error:
            # Closed or broken stream: read_exact reports it.
            return True
        finally:
            self._sock.setblocking(True)
        return True

    def read_exact(self, size: int) -> bytes:
        """Read up to ``size`` bytes, returning early on EOF or silence.

        The socket is blocking, so every ``recv`` is preceded by a readiness
        wait of at most ``read_timeout`` seconds. A peer that sends a partial
        response and then goes quiet yields the partial bytes.
        """
        buffer = bytearray()
        while len(buffer) < size and not self._closed:
            if not self.poll_readable(self._read_timeout):
                break
            try:
                chunk = self._tls.recv(size - len(buffer))
            except SSL.WantReadError:
                continue
            except (SSL.ZeroReturnError, SSL.SysCallError):
                # Orderly TLS close or peer reset: hand back what we have.
                break
            except SSL.Error as exc:
                raise GatewayConnectionError(f"TLS read failed: {exc}") from exc
            if not chunk:
                break
            buffer.extend(chunk)
        return bytes(buffer)

    def close(self) -> None:
        if self._closed:
            return
        self._closed = True
        with contextlib.suppress(SSL.Error, OSError):
            _ = self._tls.shutdown()
        self._sock.close()


class TLSConnectionProvider:
    """Opens TLS connections authenticated with a client certificate."""

    def __init__(
        self,
        *,
        host: str | None = None,
        port: int = GATEWAY_PORT,
        connect_timeout: float = 10.0,
        passphrase: str | None = None,
    ) -> None:
        """Initialize the provider.

        Args:
            host: Host overriding the production/sandbox default
            port: Gateway port
            connect_timeout: Seconds allowed for the TCP connect
            passphrase: Passphrase of the private key, if encrypted
        """
        self.host: str | None = host
        self.port: int = port
        self.connect_timeout: float = connect_timeout
        self.passphrase: str | None = passphrase

    def _context(self, certificate: str) -> SSL.Context:
        pem = certificate.encode("utf-8")
        password = None if self.passphrase is None else self.passphrase.encode("utf-8")
        try:
            cert = x509.load_pem_x509_certificate(pem)
            key = serialization.load_pem_private_key(pem, password)
            context = SSL.Context(SSL.TLS_CLIENT_METHOD)
            context.use_certificate(cert)
            context.use_privatekey(key)  # pyright: ignore[reportArgumentType]  # key type checked by OpenSSL
            context.check_privatekey()
        except (ValueError, TypeError, UnsupportedAlgorithm, SSL.Error) as exc:
            raise GatewayConnectionError(f"Invalid gateway certificate: {exc}") from exc
        return context

    def open(self, certificate: str, sandbox: bool) -> TLSConnection:
        """Connect and complete the TLS handshake.

        Raises:
            GatewayConnectionError: If the certificate is unusable, the
                endpoint is unreachable or the handshake fails
        """
        context = self._context(certificate)
        host, port = gateway_address(sandbox, self.host, self.port)

        try:
            sock = socket.create_connection((host, port), timeout=self.connect_timeout)
        except OSError as exc:
            raise GatewayConnectionError(f"Could not reach gateway {host}:{port}: {exc}") from exc

        try:
            # pyOpenSSL needs a blocking socket; readiness is handled with select.
            sock.setblocking(True)
            tls = SSL.Connection(context, sock)
            tls.set_tlsext_host_name(host.encode("idna"))
            tls.set_connect_state()
            tls.do_handshake()
        except (SSL.Error, OSError) as exc:
            sock.close()
            raise GatewayConnectionError(f"TLS handshake with {host}:{port} failed: {exc}") from exc

        logger.debug("TLS connection established with %s:%d", host, port)
        return TLSConnection(sock, tls)
