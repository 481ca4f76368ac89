from __future__ import annotations

from collections import deque
from dataclasses import dataclass
from typing import List, Set

from diary.core.errors import NotFoundError
from diary.letters.store import LetterStore
from diary.models.letter import Letter
from diary.models.participant import Participant


@dataclass
class Thread:
    root: Letter
    letters: List[Letter]  # root included, oldest first


def is_visible_to(letter: Letter, viewer: Participant) -> bool:
    """Undelivered letters exist only for their sender."""
    return letter.delivered_at is not None or letter.sender_id == viewer


class ThreadReconstructor:
    """Rebuilds the whole conversation a letter belongs to."""

    def __init__(self, store: LetterStore):
        self.store = store

    def find_root(self, letter: Letter) -> Letter:
        current = letter
        seen: Set[str] = {current.id}
        while current.reply_to:
            parent = self.store.get(current.reply_to)
            # a deleted parent ends the walk; so does a cycle
            if parent is None or parent.id in seen:
                break
            seen.add(parent.id)
            current = parent
        return current

    def collect_replies(self, root: Letter) -> List[Letter]:
        replies: List[Letter] = []
        visited: Set[str] = {root.id}
        queue = deque([root.id])
        while queue:
            parent_id = queue.popleft()
            for child in self.store.delivered_children(parent_id):
                if child.id in visited:
                    continue
                visited.add(child.id)
                replies.append(child)
                queue.append(child.id)
        return replies

    def reconstruct(self, letter_id: str, viewer: Participant) -> Thread:
        start = self.store.get(letter_id)
        if start is None or not is_visible_to(start, viewer):
            raise NotFoundError("Letter not found")

        root = self.find_root(start)
        letters = [root] + self.collect_replies(root)
        letters.sort(key=lambda l: (l.created_at, l.id))
        return Thread(root=root, letters=letters)
