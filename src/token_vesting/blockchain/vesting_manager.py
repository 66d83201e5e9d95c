from __future__ import annotations

import logging
import time
from dataclasses import dataclass
from typing import Callable

from token_vesting.core.schedule_models import VestingSchedule
from token_vesting.core.vesting_exceptions import (
    InsufficientUnlockedTokensError,
    UnknownAccountError,
    UnknownScheduleError,
    VestingAccountError,
)

logger = logging.getLogger("token_vesting.blockchain.vesting_manager")


@dataclass
class VestingAccountData:
    receiver: str
    schedule_name: str
    total_tokens: int


@dataclass
class VestingAccount:
    receiver: str
    schedule_name: str
    total_tokens: int
    withdrawn_tokens: int = 0


class VestingManager:
    """
    In-memory release accounting for vesting accounts.

    Each account holds a share of a named, compiled schedule. Unlocked tokens
    scale the schedule's released amount down to the account's total.
    """

    def __init__(self, time_provider: Callable[[], int] | None = None):
        self.schedules: dict[str, VestingSchedule] = {}
        self.accounts: dict[str, VestingAccount] = {}
        self._account_id_counter = 0
        self._time_provider = time_provider or (lambda: int(time.time()))
        logger.info("VestingManager initialized with deterministic time provider: %s", bool(time_provider))

    def _current_time(self) -> int:
        timestamp = self._time_provider()
        try:
            return int(timestamp)
        except (TypeError, ValueError) as exc:
            raise ValueError("time_provider must return an integer timestamp") from exc

    def register_schedule(self, name: str, schedule: VestingSchedule) -> None:
        """Registers a compiled schedule under ``name``."""
        if not name:
            raise VestingAccountError("Schedule name cannot be empty.")
        if name in self.schedules:
            raise VestingAccountError(f"Vesting schedule {name} is already registered.")
        self.schedules[name] = schedule
        logger.info(
            "Vesting schedule %s registered: %d tokens in %d events",
            name,
            schedule.total_token_count,
            schedule.event_count,
        )

    def get_schedule(self, name: str) -> VestingSchedule:
        schedule = self.schedules.get(name)
        if schedule is None:
            raise UnknownScheduleError(f"Vesting schedule {name} not found.")
        return schedule

    def get_account(self, account_id: str) -> VestingAccount:
        account = self.accounts.get(account_id)
        if account is None:
            raise UnknownAccountError(f"Vesting account {account_id} not found.")
        return account

    def create_vesting_account(self, data: VestingAccountData) -> str:
        """
        Creates a vesting account holding ``total_tokens`` of a registered schedule.
        """
        if not data.receiver:
            raise VestingAccountError("Receiver cannot be empty.")
        if isinstance(data.total_tokens, bool) or not isinstance(data.total_tokens, int) or data.total_tokens <= 0:
            raise VestingAccountError("Total tokens must be a positive integer.")
        self.get_schedule(data.schedule_name)

        self._account_id_counter += 1
        account_id = f"vesting_{self._account_id_counter}"
        self.accounts[account_id] = VestingAccount(
            receiver=data.receiver,
            schedule_name=data.schedule_name,
            total_tokens=data.total_tokens,
        )
        logger.info(
            "Vesting account %s created for %s on schedule %s",
            account_id,
            data.receiver,
            data.schedule_name,
        )
        return account_id

    def get_unlocked_amount(self, account_id: str, current_time: int | None = None) -> int:
        """
        Calculates the tokens unlocked for an account up to current_time, withdrawn or not.
        """
        account = self.get_account(account_id)
        schedule = self.get_schedule(account.schedule_name)

        if current_time is None:
            current_time = self._current_time()

        released = schedule.released_at(current_time)
        unlocked = account.total_tokens * released // schedule.total_token_count
        return min(unlocked, account.total_tokens)

    def get_available_amount(self, account_id: str, current_time: int | None = None) -> int:
        """
        Calculates the unlocked tokens not yet withdrawn.
        """
        account = self.get_account(account_id)
        unlocked = self.get_unlocked_amount(account_id, current_time)
        return max(0, unlocked - account.withdrawn_tokens)

    def withdraw(self, account_id: str, amount: int, current_time: int | None = None) -> int:
        """
        Simulates withdrawing unlocked tokens from a vesting account.
        """
        if isinstance(amount, bool) or not isinstance(amount, int) or amount <= 0:
            raise VestingAccountError("Withdraw amount must be a positive integer.")

        account = self.get_account(account_id)
        available = self.get_available_amount(account_id, current_time)
        if amount > available:
            logger.warning(
                "Withdraw of %d tokens from %s rejected: only %d unlocked",
                amount,
                account_id,
                available,
            )
            raise InsufficientUnlockedTokensError(
                f"Not enough unlocked tokens to withdraw: requested {amount}, available {available}.",
                details={"account_id": account_id, "requested": amount, "available": available},
            )

        account.withdrawn_tokens += amount
        logger.info(
            "Withdrew %d tokens from vesting account %s",
            amount,
            account_id
        )
        return amount
