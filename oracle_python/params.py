"""
Copyright (c) Microsoft Corporation.
Licensed under the MIT license.
This module defines the configuration objects of environments and connections.
"""

from dataclasses import dataclass, field
from typing import Union

from oracle_python.constants import AttachMode, AuthMode, CreateMode, CredentialType


@dataclass(frozen=True)
class EnvironmentConfig:
    """
    Options of an OCI environment.

    Attributes:
        mode: CreateMode flags passed to OCIEnvNlsCreate.
        charset: Client character set name (e.g. "AL32UTF8").
        ncharset: Client national character set name (e.g. "AL16UTF16").
    """

    mode: CreateMode = CreateMode.DEFAULT
    charset: str = "AL32UTF8"
    ncharset: str = "AL16UTF16"


@dataclass(frozen=True)
class RdbmsCredentials:
    """Database username and password."""

    username: str
    password: str = field(repr=False)

    credential_type = CredentialType.RDBMS

    def __repr__(self) -> str:
        return f"RdbmsCredentials(username={self.username!r}, password='***')"


@dataclass(frozen=True)
class ExternalCredentials:
    """Operating system or wallet authentication; no username or password."""

    credential_type = CredentialType.EXT


@dataclass(frozen=True)
class ProxyCredentials:
    """
    Proxy authentication: proxy_user logs on with its own password and the session
    runs as client_user.
    """

    proxy_user: str
    proxy_password: str = field(repr=False)
    client_user: str = ""

    credential_type = CredentialType.PROXY

    @property
    def logon_name(self) -> str:
        """Username in the proxy_user[client_user] form understood by the server."""
        return f"{self.proxy_user}[{self.client_user}]"

    def __repr__(self) -> str:
        return (
            f"ProxyCredentials(proxy_user={self.proxy_user!r}, "
            f"proxy_password='***', client_user={self.client_user!r})"
        )


Credentials = Union[RdbmsCredentials, ExternalCredentials, ProxyCredentials]


@dataclass(frozen=True)
class ConnectParams:
    """
    Everything needed to attach to a server and log on.

    Attributes:
        credentials: One of RdbmsCredentials, ExternalCredentials, ProxyCredentials.
        server_locator: Connect identifier (TNS alias, EZConnect string); empty means
            the default local database.
        attach_mode: How OCIServerAttach is called.
        auth_mode: Privilege flags for OCISessionBegin.
    """

    credentials: Credentials
    server_locator: str = ""
    attach_mode: AttachMode = AttachMode.DEFAULT
    auth_mode: AuthMode = AuthMode.DEFAULT

    def __post_init__(self):
        if not isinstance(self.credentials, (RdbmsCredentials, ExternalCredentials, ProxyCredentials)):
            raise TypeError(
                f"credentials must be RdbmsCredentials, ExternalCredentials or ProxyCredentials, "
                f"not {type(self.credentials).__name__}"
            )
        if isinstance(self.credentials, ProxyCredentials) and not self.credentials.client_user:
            raise ValueError("ProxyCredentials requires client_user")
