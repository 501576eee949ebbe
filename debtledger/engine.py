"""
engine.py - Collateralized Debt Engine

The DebtEngine is the only component that mutates the AccountLedger. It lets
accounts deposit collateral, mint debt against it, burn debt, redeem
collateral, and liquidate accounts whose health factor has fallen below
MIN_HEALTH_FACTOR.

Every mutating operation:
    1. validates its inputs,
    2. updates the AccountLedger and records its events,
    3. only then calls the transfer gateway / debt token,
    4. re-checks the health factor where the operation can lower it.

Operations are atomic. Before an operation starts, the engine checkpoints the
AccountLedger and every Checkpointable collaborator (adapters over one shared
AssetLedger are checkpointed once); any exception, KeyboardInterrupt
included, restores all of them, discards the operation's events and
propagates. Operations are also non-reentrant: a callback from a collaborator
that tries to enter any mutating operation while another is running gets
ReentrantCall.
"""

from __future__ import annotations
from contextlib import contextmanager
from typing import Any, Dict, List, Optional, Tuple

from .accounts import AccountLedger
from .core import (
    # Protocols
    AssetTransferGateway, DebtTokenAuthority, Checkpointable, PriceFeed,
    # Types
    AccountInformation, EngineEvent,
    CollateralDeposited, CollateralRedeemed, DebtMinted, DebtBurned,
    # Constants
    ADDITIONAL_FEED_PRECISION, LIQUIDATION_BONUS, LIQUIDATION_PRECISION,
    LIQUIDATION_THRESHOLD, MIN_HEALTH_FACTOR, PRECISION,
    # Exceptions
    HealthFactorBroken, HealthFactorNotImproved, HealthFactorOk,
    MintFailed, ReentrantCall, TransferFailed,
    require_amount, checked_add,
)
from .health import (
    account_collateral_value, calculate_health_factor,
    token_amount_from_usd, usd_value,
)
from .registry import CollateralAssetRegistry


class DebtEngine:
    """
    Solvency-enforcing engine for collateral deposits and debt issuance.

    Example:
        engine = DebtEngine(registry, gateway, debt_token, verbose=False)
        engine.deposit_collateral_and_mint("alice", "WETH", 10 * 10**18, 100 * 10**18)
        engine.get_health_factor("alice")
    """

    def __init__(
        self,
        registry: CollateralAssetRegistry,
        gateway: AssetTransferGateway,
        debt_token: DebtTokenAuthority,
        accounts: Optional[AccountLedger] = None,
        verbose: bool = True,
    ):
        """
        Create an engine.

        Args:
            registry: Supported collateral assets and their price feeds
            gateway: Moves collateral in and out of custody
            debt_token: Mint/burn authority for the debt token
            accounts: Balance store (default: a fresh AccountLedger)
            verbose: Print one line per applied or rejected operation
        """
        self.registry = registry
        self.gateway = gateway
        self.debt_token = debt_token
        self.accounts = accounts if accounts is not None else AccountLedger()
        self.verbose = verbose
        self.events: List[EngineEvent] = []
        self._pending_events: Optional[List[EngineEvent]] = None
        self._locked = False

    # ========================================================================
    # OPERATION DISCIPLINE
    # ========================================================================

    def _checkpointables(self) -> List[Any]:
        # Custody adapters sharing one AssetLedger are checkpointed once.
        collaborators = [self.accounts]
        seen = set()
        for collaborator in (self.gateway, self.debt_token):
            if not isinstance(collaborator, Checkpointable):
                continue
            key = id(getattr(collaborator, "ledger", collaborator))
            if key not in seen:
                seen.add(key)
                collaborators.append(collaborator)
        return collaborators

    @contextmanager
    def _operation(self, name: str, caller: str):
        """
        Run one top-level operation: non-reentrant, all-or-nothing.

        The lock is released on every exit, including a collaborator that
        fails to checkpoint.

        Raises:
            ReentrantCall: If another operation is already running
        """
        if self._locked:
            raise ReentrantCall(f"{name} called while another operation is in progress")
        self._locked = True
        checkpoints: List[Tuple[Any, Any]] = []
        self._pending_events = []
        try:
            for collaborator in self._checkpointables():
                checkpoints.append((collaborator, collaborator.checkpoint()))
            yield
        except BaseException as exc:
            for collaborator, token in reversed(checkpoints):
                collaborator.rollback(token)
            if self.verbose:
                print(f"✗ REJECTED: {name}({caller}): {type(exc).__name__}: {exc}")
            raise
        else:
            self.accounts.commit()
            self.events.extend(self._pending_events)
            if self.verbose:
                print(f"✓ APPLIED: {name}({caller})")
        finally:
            self._pending_events = None
            self._locked = False

    def _emit(self, event: EngineEvent) -> None:
        self._pending_events.append(event)

    # ========================================================================
    # MUTATING OPERATIONS
    # ========================================================================

    def deposit_collateral(self, caller: str, asset: str, amount: int) -> None:
        """
        Deposit `amount` of `asset` from `caller` into custody.

        Raises:
            InvalidAmount, UnsupportedAsset, TransferFailed
        """
        with self._operation("deposit_collateral", caller):
            self._deposit_collateral(caller, asset, amount)

    def mint_debt(self, caller: str, amount: int) -> None:
        """
        Mint `amount` of debt token to `caller` against its collateral.

        Raises:
            InvalidAmount, HealthFactorBroken, MintFailed
        """
        with self._operation("mint_debt", caller):
            self._mint_debt(caller, amount)

    def deposit_collateral_and_mint(self, caller: str, asset: str,
                                    collateral_amount: int, debt_amount: int) -> None:
        """Deposit collateral and mint debt in one atomic operation."""
        with self._operation("deposit_collateral_and_mint", caller):
            self._deposit_collateral(caller, asset, collateral_amount)
            self._mint_debt(caller, debt_amount)

    def redeem_collateral(self, caller: str, asset: str, amount: int) -> None:
        """
        Withdraw `amount` of `asset` back to `caller`.

        The collateral is sent out before the final health check; a
        redemption that breaks solvency is undone after the transfer attempt.

        Raises:
            InvalidAmount, UnsupportedAsset, InsufficientBalance,
            TransferFailed, HealthFactorBroken
        """
        with self._operation("redeem_collateral", caller):
            require_amount(amount)
            self.registry.require_supported(asset)
            self._redeem_collateral(asset, amount, caller, caller)
            self._revert_if_health_factor_is_broken(caller)

    def burn_debt(self, caller: str, amount: int) -> None:
        """
        Repay `amount` of the caller's debt with its own debt tokens.

        Raises:
            InvalidAmount, InsufficientBalance, TransferFailed
        """
        with self._operation("burn_debt", caller):
            require_amount(amount)
            self._burn_debt(amount, caller, caller)
            # Burning never lowers the factor.
            self._revert_if_health_factor_is_broken(caller)

    def redeem_collateral_for_debt(self, caller: str, asset: str,
                                   collateral_amount: int, debt_amount: int) -> None:
        """Burn debt, then redeem collateral, in one atomic operation."""
        with self._operation("redeem_collateral_for_debt", caller):
            require_amount(collateral_amount)
            require_amount(debt_amount)
            self.registry.require_supported(asset)
            self._burn_debt(debt_amount, caller, caller)
            self._redeem_collateral(asset, collateral_amount, caller, caller)
            self._revert_if_health_factor_is_broken(caller)

    def liquidate(self, caller: str, asset: str, user: str, debt_to_cover: int) -> None:
        """
        Repay `debt_to_cover` of an insolvent `user`'s debt and take its
        collateral worth that much plus LIQUIDATION_BONUS percent.

        The liquidator (`caller`) pays with its own debt tokens and receives
        the seized `asset`. The user's health factor must strictly improve,
        and the liquidator must stay solvent.

        Known limitation: if the system as a whole is at or below 100%
        collateralization the user may not hold enough collateral to pay the
        bonus, and the liquidation fails with InsufficientBalance.

        Raises:
            InvalidAmount, UnsupportedAsset, HealthFactorOk,
            InsufficientBalance, TransferFailed, HealthFactorNotImproved,
            HealthFactorBroken
        """
        with self._operation("liquidate", caller):
            require_amount(debt_to_cover)
            feed = self.registry.require_supported(asset)

            starting_user_health_factor = self._health_factor(user)
            if starting_user_health_factor >= MIN_HEALTH_FACTOR:
                raise HealthFactorOk(
                    f"Cannot liquidate {user}: health factor {starting_user_health_factor}"
                )

            token_amount_from_debt_covered = token_amount_from_usd(feed, debt_to_cover)
            bonus_collateral = (
                token_amount_from_debt_covered * LIQUIDATION_BONUS
            ) // LIQUIDATION_PRECISION
            total_collateral_to_redeem = checked_add(
                token_amount_from_debt_covered, bonus_collateral
            )

            self._redeem_collateral(asset, total_collateral_to_redeem, user, caller)
            self._burn_debt(debt_to_cover, user, caller)

            ending_user_health_factor = self._health_factor(user)
            if ending_user_health_factor <= starting_user_health_factor:
                raise HealthFactorNotImproved(
                    f"Health factor of {user} went from {starting_user_health_factor} "
                    f"to {ending_user_health_factor}"
                )
            self._revert_if_health_factor_is_broken(caller)

    # ========================================================================
    # INTERNAL STEPS (run inside an operation)
    # ========================================================================

    def _deposit_collateral(self, caller: str, asset: str, amount: int) -> None:
        require_amount(amount)
        self.registry.require_supported(asset)
        self.accounts.add_collateral(caller, asset, amount)
        self._emit(CollateralDeposited(caller, asset, amount))
        if not self.gateway.transfer_in(asset, caller, amount):
            raise TransferFailed(f"Could not transfer {amount} {asset} from {caller}")

    def _mint_debt(self, caller: str, amount: int) -> None:
        require_amount(amount)
        self.accounts.add_debt(caller, amount)
        self._revert_if_health_factor_is_broken(caller)
        self._emit(DebtMinted(caller, amount))
        if not self.debt_token.mint(caller, amount):
            raise MintFailed(f"Could not mint {amount} to {caller}")

    def _redeem_collateral(self, asset: str, amount: int, redeemed_from: str,
                           redeemed_to: str) -> None:
        self.accounts.remove_collateral(redeemed_from, asset, amount)
        self._emit(CollateralRedeemed(redeemed_from, redeemed_to, asset, amount))
        # A zero seizure (dust liquidation) has nothing to move.
        if amount and not self.gateway.transfer_out(asset, redeemed_to, amount):
            raise TransferFailed(f"Could not transfer {amount} {asset} to {redeemed_to}")

    def _burn_debt(self, amount: int, on_behalf_of: str, debt_from: str) -> None:
        self.accounts.remove_debt(on_behalf_of, amount)
        self._emit(DebtBurned(on_behalf_of, debt_from, amount))
        if not self.debt_token.transfer_in(debt_from, amount):
            raise TransferFailed(f"Could not collect {amount} debt token from {debt_from}")
        self.debt_token.burn(amount)

    def _health_factor(self, user: str) -> int:
        info = self.get_account_information(user)
        return calculate_health_factor(info.total_debt, info.collateral_value_usd)

    def _revert_if_health_factor_is_broken(self, user: str) -> None:
        health_factor = self._health_factor(user)
        if health_factor < MIN_HEALTH_FACTOR:
            raise HealthFactorBroken(health_factor)

    # ========================================================================
    # READ-ONLY ACCESSORS
    # ========================================================================

    def get_account_information(self, user: str) -> AccountInformation:
        return AccountInformation(
            total_debt=self.accounts.debt_of(user),
            collateral_value_usd=self.get_account_collateral_value(user),
        )

    def get_account_collateral_value(self, user: str) -> int:
        return account_collateral_value(self.registry, self.accounts.collateral_map(user))

    def get_health_factor(self, user: str) -> int:
        return self._health_factor(user)

    def calculate_health_factor(self, total_debt: int, collateral_value_usd: int) -> int:
        return calculate_health_factor(total_debt, collateral_value_usd)

    def get_usd_value(self, asset: str, amount: int) -> int:
        return usd_value(self.registry.require_supported(asset), amount)

    def get_token_amount_from_usd(self, asset: str, usd_amount: int) -> int:
        return token_amount_from_usd(self.registry.require_supported(asset), usd_amount)

    def get_collateral_balance_of_user(self, user: str, asset: str) -> int:
        return self.accounts.collateral_of(user, asset)

    def get_collateral_tokens(self) -> Tuple[str, ...]:
        return self.registry.all_assets()

    def get_collateral_token_price_feed(self, asset: str) -> Optional[PriceFeed]:
        return self.registry.feed_of(asset)

    def get_debt_token(self) -> DebtTokenAuthority:
        return self.debt_token

    @staticmethod
    def get_precision() -> int:
        return PRECISION

    @staticmethod
    def get_additional_feed_precision() -> int:
        return ADDITIONAL_FEED_PRECISION

    @staticmethod
    def get_liquidation_threshold() -> int:
        return LIQUIDATION_THRESHOLD

    @staticmethod
    def get_liquidation_bonus() -> int:
        return LIQUIDATION_BONUS

    @staticmethod
    def get_liquidation_precision() -> int:
        return LIQUIDATION_PRECISION

    @staticmethod
    def get_min_health_factor() -> int:
        return MIN_HEALTH_FACTOR

    # ========================================================================
    # AUDIT
    # ========================================================================

    def verify_solvency(self) -> Dict[str, Any]:
        """
        Check the solvency invariant for every account.

        Outside an operation every account with debt must have a health
        factor of at least MIN_HEALTH_FACTOR. A price drop can break this
        between operations; that is what liquidation is for.

        Returns:
            Dict with keys:
            - 'valid': bool - True if every account is solvent
            - 'violations': List[Dict] - account and health_factor of each
              insolvent account
        """
        violations = []
        for account in self.accounts.accounts():
            health_factor = self._health_factor(account)
            if health_factor < MIN_HEALTH_FACTOR:
                violations.append({'account': account, 'health_factor': health_factor})
        return {
            'valid': len(violations) == 0,
            'violations': violations,
        }

    def verify_protocol_backing(self) -> Dict[str, Any]:
        """
        Check that total collateral value covers total outstanding debt.

        Returns:
            Dict with keys:
            - 'valid': bool - True if collateral_value_usd >= total_debt
            - 'collateral_value_usd': int - value of all deposited collateral
            - 'total_debt': int - sum of all account debts
        """
        collateral_value = 0
        for asset in self.registry.all_assets():
            deposited = self.accounts.total_collateral(asset)
            if deposited:
                collateral_value = checked_add(
                    collateral_value, usd_value(self.registry.feed_of(asset), deposited)
                )
        total_debt = self.accounts.total_debt()
        return {
            'valid': collateral_value >= total_debt,
            'collateral_value_usd': collateral_value,
            'total_debt': total_debt,
        }

    def __repr__(self) -> str:
        return f"DebtEngine({self.registry!r}, {self.accounts!r})"
