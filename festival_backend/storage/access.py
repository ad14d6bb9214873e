"""
File access checker chain.

Each checker answers for the files it knows about (ALLOW / DENY) and
ABSTAINs for the rest. The chain runs checkers one at a time in the order
given: the first ALLOW or DENY decides, and a chain where every checker
abstains denies access.

The uploader is not special-cased here; routes that serve a file check it
before consulting the chain.
"""

import enum
import logging
from typing import Callable, Iterable, List

from sqlalchemy.orm import Session

from ..auth import AuthContext

logger = logging.getLogger(__name__)


class AccessVerdict(str, enum.Enum):
    ALLOW = "ALLOW"
    ABSTAIN = "ABSTAIN"
    DENY = "DENY"


FileAccessChecker = Callable[[Session, str, AuthContext], AccessVerdict]


class FileAccessCheckerChain:
    """Ordered file access predicates, fixed at construction."""

    def __init__(self, checkers: Iterable[FileAccessChecker]):
        self._checkers: List[FileAccessChecker] = list(checkers)

    @property
    def checkers(self) -> List[FileAccessChecker]:
        return list(self._checkers)

    def evaluate(self, db: Session, file_id: str, user: AuthContext) -> AccessVerdict:
        for checker in self._checkers:
            verdict = checker(db, file_id, user)
            if verdict != AccessVerdict.ABSTAIN:
                logger.debug(
                    f"File {file_id}: {getattr(checker, '__name__', checker)} -> {verdict.value} for {user.user_id}"
                )
                return verdict
        return AccessVerdict.DENY

    def can_access_file(self, db: Session, file_id: str, user: AuthContext) -> bool:
        return self.evaluate(db, file_id, user) == AccessVerdict.ALLOW
