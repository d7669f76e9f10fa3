"""
Per-run allocation of node identities.
"""
from __future__ import annotations

from typing import Dict, Iterator, Tuple

import attr as attrs

from .exceptions import ExportIdentityExhausted

MAX_IDENTITIES = 2**31 - 1
"""
Consumers of the exported documents store identities in signed 32 bits integers.
"""

@attrs.s(auto_attribs=True, frozen=True)
class Identity:
    """
    The identity of a node: its type tag and its index in the container of that type.
    """
    tag: str
    value: int

    def __str__(self) -> str:
        return f'{self.tag}[{self.value}]'

class IdentityRegistry:
    """
    Assigns a dense, zero-based, per-type integer to each node instance,
    in the order nodes are first encountered.

    Nodes are keyed by instance identity, never by value equality: two equal but
    distinct instances get distinct identities.

    The registry also tracks the canonical site of each node with a claim state,
    a node gets claimed once, by the first site that serializes its payload.
    Other sites encode a reference.

    A registry backs exactly one run, it's not thread safe.
    """

    UNCLAIMED = 0
    CLAIMING = 1
    CLAIMED = 2

    def __init__(self, max_identities: int = MAX_IDENTITIES) -> None:
        self.max_identities = max_identities
        self._identities: Dict[int, Identity] = {}
        # keeps nodes alive so their id() stays unique for the run.
        self._nodes: Dict[int, object] = {}
        self._first_seen: Dict[int, str] = {}
        self._counters: Dict[str, int] = {}
        self.claim_state: Dict[int, int] = {}

    def identify(self, node: object, tag: str, path: str) -> Identity:
        """
        Returns the identity of this node, allocating the next integer
        of its type on first encounter.

        :param path: Where the node is encountered, used in error messages.
        :raises ExportIdentityExhausted: If the type has no identities left.
        """
        key = id(node)
        ident = self._identities.get(key)
        if ident is not None:
            return ident
        count = self._counters.get(tag, 0)
        if count >= self.max_identities:
            raise ExportIdentityExhausted(path, tag=tag, count=count + 1,
                                          limit=self.max_identities)
        ident = self._identities[key] = Identity(tag, count)
        self._counters[tag] = count + 1
        self._nodes[key] = node
        self._first_seen[key] = path
        self.claim_state[key] = IdentityRegistry.UNCLAIMED
        return ident

    def get(self, node: object) -> 'Identity|None':
        return self._identities.get(id(node))

    def claim(self, node: object) -> bool:
        """
        Record the canonical site of this node.

        Returns True if the caller must serialize the node payload,
        False if the node has already been claimed (or is being serialized).
        """
        key = id(node)
        assert key in self._identities, f'{node!r} has no identity'
        if self.claim_state[key] != IdentityRegistry.UNCLAIMED:
            return False
        self.claim_state[key] = IdentityRegistry.CLAIMING
        return True

    def complete(self, node: object) -> None:
        key = id(node)
        assert self.claim_state[key] == IdentityRegistry.CLAIMING
        self.claim_state[key] = IdentityRegistry.CLAIMED

    def unclaimed(self) -> Iterator[Tuple[Identity, str]]:
        """
        Yields the identities of the nodes that were encountered but never claimed,
        with the path where they were first seen.
        """
        for key, state in self.claim_state.items():
            if state == IdentityRegistry.UNCLAIMED:
                yield self._identities[key], self._first_seen[key]

    def counts(self) -> Dict[str, int]:
        return dict(self._counters)

    def __len__(self) -> int:
        return len(self._identities)
