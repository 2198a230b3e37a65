"""Rendering and stripping of the managed hosts fragment.

Everything from ``MARKER`` to the end of the file belongs to kubehosts and is
regenerated on every reconciliation. Everything before it is left untouched.
"""

from .errors import MalformedFileError
from .logging_config import get_logger
from .models import AddressBook

logger = get_logger(__name__)

MARKER = b"\n\n##BEGIN K8S HOSTS##\n"


def render(address_book: AddressBook) -> bytes:
    """Render the managed fragment for ``address_book``.

    Each IP gets one line: the IP, a tab, then every hostname preceded by a
    single space. IPs are sorted so the output does not depend on listing order.
    """
    lines = []
    for ip in sorted(address_book):
        hosts = "".join(f" {host}" for host in address_book[ip])
        lines.append(f"{ip}\t{hosts}\n")
    return MARKER + "".join(lines).encode("utf-8")


def strip_managed(content: bytes) -> bytes:
    """Return the part of ``content`` that precedes the managed fragment.

    Content without a marker is returned unchanged.

    Raises:
        MalformedFileError: If splitting produced no segments.
    """
    segments = content.split(MARKER)
    if not segments:
        raise MalformedFileError("No result from splitting file content on the fragment marker")

    if len(segments) > 2:
        logger.warning("Fragment marker found more than once, keeping content before the first",
                       occurrences=len(segments) - 1)

    return segments[0]
