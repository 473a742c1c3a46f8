"""Git adapters."""

from ghbackport.core.adapters.git.cherry_pick import GitCherryPickReplayer
from ghbackport.core.adapters.git.operations import (
    GitAdapterBase,
    GitCommandError,
    GitCommandRunner,
)

__all__ = ["GitAdapterBase", "GitCherryPickReplayer", "GitCommandError", "GitCommandRunner"]
