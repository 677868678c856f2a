"""Solana wallet provider.

Reads native SOL and SPL token balances over JSON-RPC and values them with
CoinGecko (SOL) and Jupiter (SPL tokens). Each wallet becomes one crypto
account whose external id is the wallet address.
"""

import asyncio
import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from decimal import Decimal
from typing import Any

import base58
import httpx

from config import settings
from integrations.coingecko_client import CoinGeckoClient
from integrations.exceptions import (
    InvalidWalletAddressError,
    ProviderAPIError,
    ProviderAuthError,
    ProviderConnectionError,
    ProviderDataError,
    ProviderError,
)
from integrations.http_retry import fetch_with_retry
from integrations.jupiter_client import JupiterPriceClient
from integrations.parsing_utils import parse_decimal, to_json_number
from integrations.provider_protocol import (
    AccountType,
    ErrorCategory,
    ProviderAccount,
    ProviderSnapshot,
    ProviderSyncError,
    ProviderSyncResult,
)

logger = logging.getLogger(__name__)

PROVIDER_NAME = "Solana"

LAMPORTS_PER_SOL = Decimal(1_000_000_000)
TOKEN_PROGRAM_ID = "TokenkegQfeZyiNwAJbNbGKPFXCWuBvf9Ss623VQ5DA"
SOL_MINT = "So11111111111111111111111111111111111111112"


@dataclass(frozen=True)
class TokenInfo:
    symbol: str
    name: str
    decimals: int
    coingecko_id: str | None = None


KNOWN_TOKENS: dict[str, TokenInfo] = {
    SOL_MINT: TokenInfo("SOL", "Wrapped SOL", 9, "solana"),
    "EPjFWdd5AufqSSqeM2qN1xzybapC8G4wEGGkZwyTDt1v": TokenInfo("USDC", "USD Coin", 6, "usd-coin"),
    "Es9vMFrzaCERmJfrF4H2FYD4KCoNkY11McCe8BenwNYB": TokenInfo("USDT", "Tether USD", 6, "tether"),
    "DezXAZ8z7PnrnRJjz3wXBoRgixCa6xjnB7YaB1pPB263": TokenInfo("BONK", "Bonk", 5, "bonk"),
    "jtojtomepa8beP8AuQc6eXt5FriJwfFMwQx2v2f9mCL": TokenInfo("JTO", "Jito", 9, "jito-governance-token"),
    "JUPyiwrYJFskUPiHa7hkeR8VUtAeFoSYbKedZNsDvCN": TokenInfo("JUP", "Jupiter", 6, "jupiter-exchange-solana"),
    "4k3Dyjzvzp8eMZWUXbBCjEvwSkkk59S5iCNLY3QrkX6R": TokenInfo("RAY", "Raydium", 6, "raydium"),
}

UNKNOWN_SYMBOL = "UNKNOWN"
UNKNOWN_NAME = "Unknown Token"


@dataclass
class TokenBalance:
    """One non-zero SPL token holding in a wallet."""

    mint: str
    symbol: str
    name: str
    decimals: int
    amount: int  # raw base units
    ui_balance: Decimal
    price_usd: Decimal | None = None
    value_usd: Decimal | None = None


@dataclass
class WalletData:
    """Valued contents of a single wallet."""

    address: str
    lamports: int
    sol_balance: Decimal
    sol_price_usd: Decimal | None
    sol_value_usd: Decimal | None
    tokens: list[TokenBalance] = field(default_factory=list)
    total_value_usd: Decimal = Decimal(0)


def is_valid_solana_address(address: str) -> bool:
    """Return True if ``address`` base58-decodes to a 32-byte public key."""
    if not isinstance(address, str) or not address:
        return False
    try:
        decoded = base58.b58decode(address)
    except ValueError:
        return False
    return len(decoded) == 32


def shorten_address(address: str) -> str:
    """``ABCD...WXYZ`` form used in account names."""
    return f"{address[:4]}...{address[-4:]}"


class SolanaClient:
    """Async Solana wallet reader.

    Implements the ProviderClient protocol for multi-provider support.
    """

    def __init__(
        self,
        wallet_addresses: list[str] | None = None,
        rpc_url: str | None = None,
        http_client: httpx.AsyncClient | None = None,
        coingecko_client: CoinGeckoClient | None = None,
        jupiter_client: JupiterPriceClient | None = None,
    ):
        # Dedupe, keeping first-seen order
        self._wallets = list(dict.fromkeys(a.strip() for a in (wallet_addresses or []) if a.strip()))
        self._rpc_url = rpc_url or settings.SOLANA_RPC_URL
        self._http_client = http_client
        self._coingecko = coingecko_client or CoinGeckoClient(http_client=http_client)
        self._jupiter = jupiter_client or JupiterPriceClient(http_client=http_client)

    @property
    def provider_name(self) -> str:
        return PROVIDER_NAME

    @property
    def wallet_addresses(self) -> list[str]:
        return list(self._wallets)

    def is_configured(self) -> bool:
        """True when at least one wallet is tracked."""
        return bool(self._wallets)

    async def _rpc(self, method: str, params: list[Any]) -> Any:
        """Make one JSON-RPC call and return its ``result``."""
        payload = {"jsonrpc": "2.0", "id": 1, "method": method, "params": params}
        try:
            response = await fetch_with_retry(
                "POST",
                self._rpc_url,
                client=self._http_client,
                max_retries=settings.HTTP_MAX_RETRIES,
                base_delay_ms=settings.HTTP_BASE_DELAY_MS,
                timeout_ms=settings.HTTP_TIMEOUT_MS,
                label=f"Solana RPC {method}",
                json=payload,
            )
        except (httpx.HTTPError, asyncio.TimeoutError) as exc:
            raise ProviderConnectionError(
                f"Solana RPC {method} failed: {exc!r}", provider_name=PROVIDER_NAME
            ) from exc

        status = response.status_code
        if status in (401, 403):
            raise ProviderAuthError(
                f"Solana RPC rejected request (HTTP {status})", provider_name=PROVIDER_NAME
            )
        if status >= 400:
            raise ProviderAPIError(
                f"Solana RPC {method} failed (HTTP {status})",
                provider_name=PROVIDER_NAME,
                status_code=status,
            )

        try:
            body = response.json()
        except ValueError as exc:
            raise ProviderDataError(
                f"Solana RPC {method} returned non-JSON", provider_name=PROVIDER_NAME
            ) from exc

        if not isinstance(body, dict):
            raise ProviderDataError(
                f"Solana RPC {method} returned a non-object body", provider_name=PROVIDER_NAME
            )
        if body.get("error"):
            error = body["error"]
            message = error.get("message") if isinstance(error, dict) else str(error)
            raise ProviderAPIError(
                f"Solana RPC {method} error: {message}", provider_name=PROVIDER_NAME
            )
        if "result" not in body:
            raise ProviderDataError(
                f"Solana RPC {method} response has no result", provider_name=PROVIDER_NAME
            )
        return body["result"]

    async def get_sol_balance(self, address: str) -> int:
        """Native balance in lamports."""
        result = await self._rpc("getBalance", [address])
        try:
            return int(result["value"])
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderDataError(
                "Malformed getBalance result", provider_name=PROVIDER_NAME
            ) from exc

    async def get_token_accounts(self, address: str) -> list[TokenBalance]:
        """Non-zero SPL token balances owned by ``address``."""
        result = await self._rpc(
            "getTokenAccountsByOwner",
            [address, {"programId": TOKEN_PROGRAM_ID}, {"encoding": "jsonParsed"}],
        )

        tokens: list[TokenBalance] = []
        try:
            for item in result["value"]:
                info = item["account"]["data"]["parsed"]["info"]
                token_amount = info["tokenAmount"]
                ui_balance = parse_decimal(
                    token_amount.get("uiAmountString", token_amount.get("uiAmount"))
                ) or Decimal(0)
                if ui_balance == 0:
                    continue

                mint = info["mint"]
                known = KNOWN_TOKENS.get(mint)
                tokens.append(
                    TokenBalance(
                        mint=mint,
                        symbol=known.symbol if known else UNKNOWN_SYMBOL,
                        name=known.name if known else UNKNOWN_NAME,
                        decimals=int(token_amount.get("decimals", 0)),
                        amount=int(token_amount.get("amount", 0)),
                        ui_balance=ui_balance,
                    )
                )
        except (KeyError, TypeError, ValueError) as exc:
            raise ProviderDataError(
                "Malformed getTokenAccountsByOwner result", provider_name=PROVIDER_NAME
            ) from exc
        return tokens

    async def get_wallet_data(self, address: str) -> WalletData:
        """Fetch and value everything held by one wallet.

        Raises:
            InvalidWalletAddressError: If the address is not a valid public key.
        """
        if not is_valid_solana_address(address):
            raise InvalidWalletAddressError(address)

        lamports, tokens = await asyncio.gather(
            self.get_sol_balance(address),
            self.get_token_accounts(address),
        )

        # SOL is priced separately, even when held as wrapped SOL
        token_mints = [t.mint for t in tokens if t.mint != SOL_MINT]
        sol_price, token_prices = await asyncio.gather(
            self._coingecko.get_sol_price(),
            self._jupiter.get_token_prices(token_mints),
        )

        sol_balance = Decimal(lamports) / LAMPORTS_PER_SOL
        sol_value = sol_balance * sol_price if sol_price is not None else None

        total = sol_value or Decimal(0)
        for token in tokens:
            token.price_usd = token_prices.get(token.mint)
            if token.price_usd is not None:
                token.value_usd = token.ui_balance * token.price_usd
                total += token.value_usd

        return WalletData(
            address=address,
            lamports=lamports,
            sol_balance=sol_balance,
            sol_price_usd=sol_price,
            sol_value_usd=sol_value,
            tokens=tokens,
            total_value_usd=total,
        )

    @staticmethod
    def to_account(wallet: WalletData) -> ProviderAccount:
        return ProviderAccount(
            external_id=wallet.address,
            name=f"Solana Wallet ({shorten_address(wallet.address)})",
            type=AccountType.CRYPTO,
            balance_usd=wallet.total_value_usd,
            metadata={
                "sol_balance": to_json_number(wallet.sol_balance),
                "sol_price_usd": to_json_number(wallet.sol_price_usd),
                "sol_value_usd": to_json_number(wallet.sol_value_usd),
                "token_count": len(wallet.tokens),
                "tokens": [
                    {
                        "mint": t.mint,
                        "symbol": t.symbol,
                        "balance": to_json_number(t.ui_balance),
                        "value_usd": to_json_number(t.value_usd),
                    }
                    for t in wallet.tokens
                ],
            },
        )

    async def sync_all(self, user_id: str) -> ProviderSyncResult:
        """Value every tracked wallet.

        A failing wallet is reported as a sync error and the others still
        sync. If every wallet fails, the first failure is raised.
        """
        result = ProviderSyncResult()
        if not self._wallets:
            logger.debug("Solana: no wallets tracked for user %s", user_id)
            return result

        synced_at = datetime.now(timezone.utc)
        outcomes = await asyncio.gather(
            *(self.get_wallet_data(address) for address in self._wallets),
            return_exceptions=True,
        )

        failures: list[ProviderError] = []
        for address, outcome in zip(self._wallets, outcomes):
            if isinstance(outcome, ProviderError):
                logger.warning("Solana: wallet %s failed: %s", shorten_address(address), outcome)
                failures.append(outcome)
                result.errors.append(_to_sync_error(outcome, address))
                continue
            if isinstance(outcome, BaseException):
                raise outcome

            result.accounts.append(self.to_account(outcome))
            result.snapshots.append(
                ProviderSnapshot(
                    account_external_id=address,
                    value_usd=outcome.total_value_usd,
                    timestamp=synced_at,
                )
            )

        if failures and not result.accounts:
            raise failures[0]

        logger.info(
            "Solana: valued %d wallets (%d failed)", len(result.accounts), len(failures)
        )
        return result


def _to_sync_error(exc: ProviderError, address: str) -> ProviderSyncError:
    if isinstance(exc, ProviderAuthError):
        category = ErrorCategory.AUTH
    elif isinstance(exc, ProviderConnectionError):
        category = ErrorCategory.CONNECTION
    elif isinstance(exc, ProviderAPIError) and exc.status_code == 429:
        category = ErrorCategory.RATE_LIMIT
    elif isinstance(exc, (ProviderDataError, InvalidWalletAddressError)):
        category = ErrorCategory.DATA
    else:
        category = ErrorCategory.UNKNOWN
    return ProviderSyncError(
        message=str(exc),
        category=category,
        account_id=address,
        retriable=bool(getattr(exc, "retriable", False)),
    )
