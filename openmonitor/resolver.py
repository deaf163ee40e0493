"""
Design (resolver.py)
- Purpose: Cross-check the operator's watch list against the directory before any probing.
- Inputs: Directory, ordered watch list (duplicates allowed).
- Outputs: list[ResolvedTarget] in watch-list order.
- Side effects: None.
"""

from typing import Iterable, List

from .errors import UnknownEndpoint
from .models import Directory, ResolvedTarget
from .utils import parse_ipv4


def resolve(directory: Directory, watch_list: Iterable[str]) -> List[ResolvedTarget]:
    """
    Resolve every requested name up front. The first name missing from the directory
    raises UnknownEndpoint; a malformed address raises ConfigurationError. Either way
    the caller gets nothing, so a typo never strands a run halfway through.
    """
    targets: List[ResolvedTarget] = []
    for name in watch_list:
        entry = directory.get(name)
        if entry is None:
            raise UnknownEndpoint(name)
        targets.append(ResolvedTarget(name=name, address=parse_ipv4(entry.address), port=entry.port))
    return targets
