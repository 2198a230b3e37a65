"""Shared fixtures for kubehosts tests."""

from typing import Iterable, List, Sequence, Union

import pytest

from kubehosts.errors import SubscribeError
from kubehosts.models import IngressRecord, IngressRule, WatchEvent

ORIGINAL_HOSTS = b"127.0.0.1\tlocalhost\n::1\tlocalhost ip6-localhost\n"


def make_record(name: str, ip=None, hosts: Sequence[str] = ()) -> IngressRecord:
    return IngressRecord(
        name=name,
        namespace="default",
        load_balancer_ip=ip,
        rules=[IngressRule(host=h) for h in hosts],
    )


class FakeCluster:
    """Scripted stand-in for ClusterClient.

    ``subscriptions`` holds one event list per watch; once they are used up
    the next watch fails with SubscribeError, which ends a WatchLoop.
    ``listings`` holds list results or exceptions; the last one repeats.
    """

    def __init__(self,
                 listings: Sequence[Union[List[IngressRecord], Exception]] = ([],),
                 subscriptions: Iterable[List[WatchEvent]] = ()):
        self.listings = list(listings)
        self.subscriptions = list(subscriptions)
        self.connect_calls = 0
        self.list_calls = 0
        self.watch_calls = 0

    def connect(self) -> None:
        self.connect_calls += 1

    def list_ingresses(self) -> List[IngressRecord]:
        self.list_calls += 1
        result = self.listings[0] if len(self.listings) == 1 else self.listings.pop(0)
        if isinstance(result, Exception):
            raise result
        return result

    def watch_ingresses(self):
        self.watch_calls += 1
        if not self.subscriptions:
            raise SubscribeError("Watch error: no more subscriptions")
        return iter(self.subscriptions.pop(0))


@pytest.fixture
def hosts_file(tmp_path):
    """A hosts file with ordinary content and no managed fragment."""
    path = tmp_path / "hosts"
    path.write_bytes(ORIGINAL_HOSTS)
    return path
