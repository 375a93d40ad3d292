"""
Read-only collaborators consulted while evaluating rules.

The validators only depend on these protocols. Production wiring uses
the Kubernetes-backed implementations in ``cattle_webhook.providers``;
the static implementations below back tests and offline evaluation.
"""

from typing import Callable, Dict, Iterable, List, Optional, Protocol, Tuple

from cattle_webhook.exceptions import NotFoundError
from cattle_webhook.models import ResourceAttributes, Setting, User, UserInfo


class UserLookup(Protocol):
    def get(self, name: str) -> User:
        """Return the user or raise NotFoundError."""
        ...


class SettingLookup(Protocol):
    def get(self, name: str) -> Setting:
        """Return the setting or raise NotFoundError."""
        ...


class Authorizer(Protocol):
    def check(self, subject: UserInfo, verb: str, resource: ResourceAttributes) -> bool:
        ...


class StaticUserLookup:
    def __init__(self, users: Optional[Dict[str, Iterable[str]]] = None):
        self.users = {
            name: User(name=name, principal_ids=list(principal_ids))
            for name, principal_ids in (users or {}).items()
        }

    def get(self, name: str) -> User:
        try:
            return self.users[name]
        except KeyError:
            raise NotFoundError("user", name)


class StaticSettingLookup:
    def __init__(self, settings: Optional[Dict[str, str]] = None):
        self.settings = {
            name: Setting(name=name, value=value)
            for name, value in (settings or {}).items()
        }

    def get(self, name: str) -> Setting:
        try:
            return self.settings[name]
        except KeyError:
            raise NotFoundError("setting", name)


class StaticAuthorizer:
    """Answers every check with a fixed verdict, or delegates to a predicate."""

    def __init__(
        self,
        allowed: bool = True,
        predicate: Optional[Callable[[UserInfo, str, ResourceAttributes], bool]] = None,
    ):
        self.allowed = allowed
        self.predicate = predicate
        self.calls: List[Tuple[UserInfo, str, ResourceAttributes]] = []

    def check(self, subject: UserInfo, verb: str, resource: ResourceAttributes) -> bool:
        self.calls.append((subject, verb, resource))
        if self.predicate is not None:
            return self.predicate(subject, verb, resource)
        return self.allowed
