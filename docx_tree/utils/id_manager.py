"""
Identifier allocation for one document tree.

Relationship ids and content-control ids must be unique within a single
package. Every parsed tree owns its own IDManager, seeded with the ids
already present in the source package.
"""

import logging
import re
from typing import Dict, Iterable, Set

logger = logging.getLogger(__name__)

_NUMBERED_ID = re.compile(r"^(?P<prefix>.*?)(?P<number>\d+)$")


class IDManager:
    """
    Hands out unique identifiers per scope.

    A scope is an arbitrary string ("rels:word/document.xml",
    "content_control", ...). Ids registered in one scope never collide with
    ids generated later in the same scope.
    """

    def __init__(self):
        self._registered: Dict[str, Set[str]] = {}
        self._counters: Dict[str, int] = {}

    def register_id(self, scope: str, element_id: str) -> bool:
        """
        Register an existing id.

        Args:
            scope: Allocation scope
            element_id: Id already in use

        Returns:
            True if the id was new in this scope, False if already registered
        """
        ids = self._registered.setdefault(scope, set())
        if element_id in ids:
            return False
        ids.add(element_id)
        match = _NUMBERED_ID.match(element_id)
        if match:
            number = int(match.group("number"))
            if number > self._counters.get(scope, 0):
                self._counters[scope] = number
        return True

    def register_ids(self, scope: str, element_ids: Iterable[str]) -> None:
        for element_id in element_ids:
            self.register_id(scope, element_id)

    def generate_unique_id(self, scope: str, prefix: str = "") -> str:
        """
        Generate an id unique within scope.

        Args:
            scope: Allocation scope
            prefix: Text placed before the number ("rId" gives "rId7")

        Returns:
            Unique id string
        """
        ids = self._registered.setdefault(scope, set())
        counter = self._counters.get(scope, 0) + 1
        element_id = f"{prefix}{counter}"
        while element_id in ids:
            counter += 1
            element_id = f"{prefix}{counter}"
        self._counters[scope] = counter
        ids.add(element_id)
        logger.debug(f"Allocated id {element_id} in scope {scope}")
        return element_id

    def is_id_registered(self, scope: str, element_id: str) -> bool:
        return element_id in self._registered.get(scope, set())
