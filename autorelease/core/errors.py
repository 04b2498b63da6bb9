"""Process exit codes.

Each failure class of a release run maps to its own exit code so that the
hosting CI can tell a broken build from a credential problem or from a
release that reached the registry but not the remote.
"""

from enum import IntEnum

__all__ = ["ErrorCode"]


class ErrorCode(IntEnum):
    """Exit codes for CLI commands.

    These values are part of the CLI contract and must stay stable:
    - 0: Run succeeded (or nothing to do)
    - 1: User error (bad flags, invalid config, rejected trigger)
    - 2: Setup failure (checkout, identity or tool installation)
    - 3: Verification failure (build or tests)
    - 4: Authentication failure (missing or invalid credential)
    - 5: Publish failure (registry refused or unreachable)
    - 6: Published to the registry but the tag/commit was not pushed
    - 7: Another run holds the branch lock
    """

    OK = 0
    USER_ERROR = 1
    SETUP_ERROR = 2
    VERIFY_ERROR = 3
    AUTH_ERROR = 4
    PUBLISH_ERROR = 5
    PUBLISHED_NOT_PUSHED = 6
    RUN_IN_PROGRESS = 7

    def __str__(self) -> str:
        return self.name.lower().replace("_", " ")

    @property
    def is_success(self) -> bool:
        return self == ErrorCode.OK

    @property
    def is_error(self) -> bool:
        return self != ErrorCode.OK
