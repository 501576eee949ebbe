"""
debtledger - Overcollateralized Debt Engine

Accounts deposit approved collateral assets, mint a USD-pegged debt token
against them, and can be liquidated by anyone once their health factor falls
below 1.0.

Usage:
    from debtledger import build_system, LOCAL_CONFIG

    system = build_system(LOCAL_CONFIG, verbose=False)
    system.fund("alice", "WETH", 10 * 10**18)

    engine = system.engine
    engine.deposit_collateral_and_mint("alice", "WETH", 10 * 10**18, 5_000 * 10**18)
    engine.get_health_factor("alice")      # 2e18

    system.fund("keeper", "WETH", 10 * 10**18)
    engine.deposit_collateral_and_mint("keeper", "WETH", 10 * 10**18, 2_000 * 10**18)

    # Price crash: alice becomes liquidatable
    system.set_price("WETH", 900 * 10**8)
    engine.liquidate("keeper", "WETH", "alice", 1_000 * 10**18)
"""

# Core types
from .core import (
    Move,
    Transaction,
    Unit,
    ExecuteResult,
    PriceQuote,
    AccountInformation,
    CollateralDeposited,
    CollateralRedeemed,
    DebtMinted,
    DebtBurned,
    EngineEvent,
    collateral_token,
    debt_token,
    # Protocols
    PriceFeed,
    AssetTransferGateway,
    DebtTokenAuthority,
    Checkpointable,
    # Exceptions
    LedgerError,
    UnitNotRegistered,
    WalletNotRegistered,
    InvalidAmount,
    UnsupportedAsset,
    ConfigurationMismatch,
    TransferFailed,
    MintFailed,
    HealthFactorBroken,
    HealthFactorOk,
    HealthFactorNotImproved,
    InsufficientBalance,
    ReentrantCall,
    AmountOverflow,
    InvalidPrice,
    StalePrice,
    # Constants
    SYSTEM_WALLET,
    UNIT_TYPE_COLLATERAL,
    UNIT_TYPE_DEBT_TOKEN,
    MAX_UINT256,
    PRECISION,
    FEED_DECIMALS,
    ADDITIONAL_FEED_PRECISION,
    LIQUIDATION_THRESHOLD,
    LIQUIDATION_PRECISION,
    LIQUIDATION_BONUS,
    MIN_HEALTH_FACTOR,
    ORACLE_TIMEOUT,
)

# Asset ledger and custody
from .ledger import AssetLedger
from .custody import ENGINE_CUSTODY_WALLET, LedgerTransferGateway, LedgerDebtToken

# Prices
from .pricing_source import StaticPriceFeed, TimeSeriesPriceFeed, StaleCheckedFeed

# Engine
from .registry import CollateralAssetRegistry
from .accounts import AccountLedger, BalanceChange
from .health import (
    feed_price,
    usd_value,
    token_amount_from_usd,
    account_collateral_value,
    calculate_health_factor,
    is_solvent,
)
from .engine import DebtEngine

# Wiring and simulation
from .bootstrap import CollateralConfig, NetworkConfig, LOCAL_CONFIG, DebtSystem, build_system
from .simulation import (
    generate_price_path,
    run_liquidation_sweep,
    max_coverable_debt,
    SweepReport,
    LiquidationRecord,
    FailedLiquidation,
)

__all__ = [
    # Core
    'Move', 'Transaction', 'Unit', 'ExecuteResult', 'PriceQuote',
    'AccountInformation', 'CollateralDeposited', 'CollateralRedeemed',
    'DebtMinted', 'DebtBurned', 'EngineEvent', 'collateral_token', 'debt_token',
    'PriceFeed', 'AssetTransferGateway', 'DebtTokenAuthority', 'Checkpointable',
    # Exceptions
    'LedgerError', 'UnitNotRegistered', 'WalletNotRegistered',
    'InvalidAmount', 'UnsupportedAsset', 'ConfigurationMismatch', 'TransferFailed',
    'MintFailed', 'HealthFactorBroken', 'HealthFactorOk', 'HealthFactorNotImproved',
    'InsufficientBalance', 'ReentrantCall', 'AmountOverflow', 'InvalidPrice', 'StalePrice',
    # Constants
    'SYSTEM_WALLET', 'UNIT_TYPE_COLLATERAL', 'UNIT_TYPE_DEBT_TOKEN', 'MAX_UINT256',
    'PRECISION', 'FEED_DECIMALS', 'ADDITIONAL_FEED_PRECISION', 'LIQUIDATION_THRESHOLD',
    'LIQUIDATION_PRECISION', 'LIQUIDATION_BONUS', 'MIN_HEALTH_FACTOR', 'ORACLE_TIMEOUT',
    # Asset ledger and custody
    'AssetLedger', 'ENGINE_CUSTODY_WALLET', 'LedgerTransferGateway', 'LedgerDebtToken',
    # Prices
    'StaticPriceFeed', 'TimeSeriesPriceFeed', 'StaleCheckedFeed',
    # Engine
    'CollateralAssetRegistry', 'AccountLedger', 'BalanceChange',
    'feed_price', 'usd_value', 'token_amount_from_usd', 'account_collateral_value',
    'calculate_health_factor', 'is_solvent', 'DebtEngine',
    # Wiring and simulation
    'CollateralConfig', 'NetworkConfig', 'LOCAL_CONFIG', 'DebtSystem', 'build_system',
    'generate_price_path', 'run_liquidation_sweep', 'max_coverable_debt',
    'SweepReport', 'LiquidationRecord', 'FailedLiquidation',
]
