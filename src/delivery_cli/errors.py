"""Error types raised by the init workflow and its collaborators."""

from enum import Enum
from typing import Optional


class Kind(str, Enum):
    DUAL_PROVIDER = "dual_provider"
    OPTION_CONSTRAINT = "option_constraint"
    CONFIG = "config"
    NO_GIT_CONFIG = "no_git_config"
    NO_GITHUB_SCP_CONFIG = "no_github_scp_config"
    NO_BITBUCKET_SCP_CONFIG = "no_bitbucket_scp_config"
    MISSING_CONFIG_FILE = "missing_config_file"
    REMOTE_MISMATCH = "remote_mismatch"
    GIT = "git"
    API = "api"
    SCAFFOLD = "scaffold"


class DeliveryError(Exception):
    kind = Kind.CONFIG

    def __init__(self, message: str, detail: Optional[str] = None):
        super().__init__(message)
        self.detail = detail

    def __str__(self) -> str:
        message = super().__str__()
        if self.detail:
            return f"{message}\n{self.detail}"
        return message


class UserError(DeliveryError):
    """Failure the user can fix by changing options or server settings."""


class DualProviderSelection(UserError):
    kind = Kind.DUAL_PROVIDER

    def __init__(self):
        super().__init__(
            "Please specify just one Source Code Provider: delivery (default), github or bitbucket."
        )


class OptionConstraint(UserError):
    kind = Kind.OPTION_CONSTRAINT


class ConfigError(UserError):
    kind = Kind.CONFIG


class NoGitConfig(UserError):
    kind = Kind.NO_GIT_CONFIG


class MissingProviderConfig(UserError):
    def __init__(self, provider: str):
        self.provider = provider
        self.kind = Kind.NO_GITHUB_SCP_CONFIG if provider == "github" else Kind.NO_BITBUCKET_SCP_CONFIG
        super().__init__(
            f"The {provider.title()} integration is not configured on the Delivery server.",
            detail=f"Ask your administrator to set up {provider.title()} as a Source Code Provider.",
        )


class MissingConfigFile(UserError):
    kind = Kind.MISSING_CONFIG_FILE

    def __init__(self, path):
        self.path = path
        super().__init__(
            f"You used a custom build cookbook generator, but {path} was not created.",
            detail="Please update your generator to create a valid .delivery/config.json or pass in a custom config.",
        )


class RemoteMismatch(UserError):
    kind = Kind.REMOTE_MISMATCH

    def __init__(self, name: str, actual: str, expected: str):
        self.name = name
        self.actual = actual
        self.expected = expected
        super().__init__(
            f"Remote '{name}' already exists and points to {actual}",
            detail=f"Expected {expected}. Fix it with: git remote set-url {name} {expected}",
        )


class GitError(DeliveryError):
    kind = Kind.GIT

    def __init__(self, message: str, stderr: str = ""):
        self.stderr = stderr
        super().__init__(message, detail=stderr.strip() or None)


class ApiError(DeliveryError):
    kind = Kind.API

    def __init__(self, message: str, status_code: Optional[int] = None, detail: Optional[str] = None):
        self.status_code = status_code
        super().__init__(message, detail=detail)


class ScaffoldError(DeliveryError):
    kind = Kind.SCAFFOLD
