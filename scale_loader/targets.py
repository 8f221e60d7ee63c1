import socket
from typing import List

from scale_loader.models import Target

DEFAULT_HTTP_PORT = 80


class ResolutionError(Exception):
    """Raised when the target host has no usable IPv4 address."""


def resolve_ipv4(host: str) -> str:
    try:
        infos = socket.getaddrinfo(host, None, socket.AF_INET, socket.SOCK_STREAM)
    except (socket.gaierror, UnicodeError) as exc:
        raise ResolutionError(f"Error looking up {host}: {exc}") from exc

    for family, _, _, _, sockaddr in infos:
        if family == socket.AF_INET:
            return sockaddr[0]
    raise ResolutionError(f"Failed to find suitable IP address for {host}: {infos}")


def build_targets(host: str, ip: str, port: int, paths: str) -> List[Target]:
    """One GET target per comma-separated path, addressed by IP and carrying the hostname as Host."""
    authority = ip if port == DEFAULT_HTTP_PORT else f"{ip}:{port}"
    headers = {"Host": host}
    targets = []
    for path in paths.split(","):
        if path.startswith("/"):
            path = path[1:]
        targets.append(Target(method="GET", url=f"http://{authority}/{path}", headers=headers))
    return targets
