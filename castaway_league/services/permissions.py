from dataclasses import dataclass

from castaway_league.core.errors import Forbidden, Unauthorized
from castaway_league.models.models import League, Team


@dataclass(frozen=True)
class Identity:
    """The caller as the auth layer resolved it. Opaque to everything else."""
    user_id: int
    is_admin: bool = False


def require_identity(identity: Identity | None) -> Identity:
    if identity is None:
        raise Unauthorized()
    return identity


def is_commissioner_or_admin(identity: Identity, league: League) -> bool:
    return identity.is_admin or league.commissioner_id == identity.user_id


def require_commissioner_or_admin(identity: Identity | None, league: League) -> Identity:
    identity = require_identity(identity)
    if not is_commissioner_or_admin(identity, league):
        raise Forbidden("Commissioner access required")
    return identity


def require_admin(identity: Identity | None) -> Identity:
    identity = require_identity(identity)
    if not identity.is_admin:
        raise Forbidden("Admin access required")
    return identity


def require_team_owner(identity: Identity | None, team: Team) -> Identity:
    identity = require_identity(identity)
    if team.user_id is None or team.user_id != identity.user_id:
        raise Forbidden("You do not own this team")
    return identity


def require_team_owner_or_commissioner(identity: Identity | None, league: League, team: Team) -> Identity:
    identity = require_identity(identity)
    if team.user_id == identity.user_id or is_commissioner_or_admin(identity, league):
        return identity
    raise Forbidden("Not authorized for this team")
