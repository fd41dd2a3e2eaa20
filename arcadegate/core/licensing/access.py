from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, List, Optional

from arcadegate.core.licensing.models import License
from arcadegate.core.licensing.session import SessionSnapshot


@dataclass(frozen=True)
class Game:
    """Catalog entry supplied by the game catalog."""

    id: str
    name: str = ""
    route: str = ""


def evaluate_game_access(license: Optional[License], game_id: str) -> bool:
    """
    Game-level access for the current license:
    - no session (or an inactive one): denied
    - admin license: every game
    - otherwise the allow-list, where an empty list means every game
    """
    if license is None or not license.is_active:
        return False
    if license.is_admin:
        return True
    if not license.allowed_games:
        return True
    return str(game_id) in license.allowed_games


def snapshot_has_game_access(snapshot: SessionSnapshot, game_id: str) -> bool:
    return evaluate_game_access(snapshot.license, game_id)


def filter_accessible_games(games: Iterable[Game], snapshot: SessionSnapshot) -> List[Game]:
    return [g for g in games if snapshot_has_game_access(snapshot, g.id)]
