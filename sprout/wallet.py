"""Seeds balance, focus time and medal unlocks for Sprout."""

from __future__ import annotations

import logging
from pathlib import Path

from sprout.errors import NotFoundError, ValidationError
from sprout.fileio import read_document, write_document
from sprout.models import Medal, Wallet
from sprout.workspace import wallet_path

logger = logging.getLogger(__name__)


DEFAULT_MEDALS = (
    Medal(id="m1", name="Dawn Herald", icon="Sunrise",
          description="Finish the first task before 08:00 seven days in a row"),
    Medal(id="m2", name="Deep Diver", icon="Waves",
          description="Accumulate 100 hours of focus time"),
    Medal(id="m3", name="Four Quadrants", icon="Grid",
          description="Reach 80% completion in all of A/B/C/D"),
    Medal(id="m4", name="Quiet Years", icon="Clock", cost=500,
          description="One year with Sprout (redeem for 500 seeds)"),
    Medal(id="m5", name="Palette Keeper", icon="Palette", cost=1000,
          description="Collect five themes (redeem for 1000 seeds)"),
)


def with_default_medals(wallet: Wallet) -> Wallet:
    """Add any catalogue medal the wallet does not know yet."""
    known = {m.id for m in wallet.medals}
    for medal in DEFAULT_MEDALS:
        if medal.id not in known:
            wallet.medals.append(Medal.from_dict(medal.to_dict()))
    return wallet


def load_wallet(root: Path | None = None) -> Wallet:
    return with_default_medals(Wallet.from_dict(read_document(wallet_path(root))))


def save_wallet(wallet: Wallet, root: Path | None = None) -> None:
    write_document(wallet_path(root), wallet.to_dict())


def add_seeds(wallet: Wallet, amount: int) -> int:
    wallet.seeds += amount
    logger.debug("Seeds %+d -> %d", amount, wallet.seeds)
    return wallet.seeds


def add_focus_time(wallet: Wallet, minutes: int) -> int:
    """Credit a finished focus countdown. Returns the new total in minutes."""
    if minutes <= 0:
        raise ValidationError("focus minutes must be positive")
    wallet.focus_time += minutes
    return wallet.focus_time


def unlock_medal(wallet: Wallet, medal_id: str) -> bool:
    """Spend seeds on a purchasable medal.

    Returns False without charging when the medal is already unlocked,
    has no price, or the balance is short.
    """
    medal = next((m for m in wallet.medals if m.id == medal_id), None)
    if medal is None:
        raise NotFoundError("Medal", medal_id)
    if medal.unlocked or not medal.cost or wallet.seeds < medal.cost:
        return False
    wallet.seeds -= medal.cost
    medal.unlocked = True
    logger.info("Unlocked medal %s for %d seeds", medal_id, medal.cost)
    return True
