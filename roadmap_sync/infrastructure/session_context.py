"""In-memory session context — the acting user and session token pair.

The auth layer signs users in and out; the state engine only reads
`current_user`. Persisting the pair across restarts is the auth layer's job.
"""

from roadmap_sync.core.domain_types import UserId


class InMemorySessionContext:
    def __init__(self, user: str | None = None, session: str | None = None):
        self._user = UserId(user) if user else None
        self._session = session

    @property
    def current_user(self) -> UserId | None:
        return self._user

    @property
    def current_session(self) -> str | None:
        return self._session

    def is_authenticated(self) -> bool:
        return self._user is not None and self._session is not None

    def sign_in(self, user: str, session: str) -> None:
        self._user = UserId(user)
        self._session = session

    def sign_out(self) -> None:
        self._user = None
        self._session = None
