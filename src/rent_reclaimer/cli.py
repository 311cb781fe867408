from __future__ import annotations

import argparse
import logging
import sys
from typing import Callable, Dict, List, Optional

from .checker import Checker
from .closer import BatchCloser
from .collector import Collector
from .config import Settings, sol_to_lamports
from .disburser import Disburser
from .errors import ConfigurationError, InsufficientFundsError, ValidationError
from .project_constants import ELIGIBLE_ADDRESS_FILE, ELIGIBLE_KEYS_FILE
from .prompts import AutoConfirm, ConsolePrompter, Prompter, parse_sol_amount
from .rpc import ChainClient, RpcClient
from .stats import fmt_sol
from .wallets import (
    WalletRecord,
    load_addresses,
    load_fund_keypair,
    load_wallets,
    write_eligible_files,
)

RULE = "=" * 80


def setup_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.INFO
    logging.basicConfig(level=level, format="%(levelname)s: %(message)s")


def header(title: str) -> None:
    print(RULE)
    print(title)
    print(RULE)


def load_wallets_or_exit(settings: Settings) -> List[WalletRecord]:
    try:
        wallets = load_wallets(settings.wallets_file)
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        raise SystemExit(1)
    print(f"📂 Wallets loaded: {len(wallets)}\n")
    return wallets


def run_check(settings: Settings, chain: ChainClient, prompter: Prompter) -> int:
    header("🔍 CHECK")
    wallets = load_wallets_or_exit(settings)

    result = Checker(chain, settings).check_all(wallets)
    write_eligible_files(result.eligible, ELIGIBLE_KEYS_FILE, ELIGIBLE_ADDRESS_FILE)

    print()
    header("📊 CHECK RESULTS")
    print(result.stats.render())
    if result.eligible:
        print(f"\n💾 Saved {len(result.eligible)} wallets")
        print(f"🔑 Keys     : {ELIGIBLE_KEYS_FILE}")
        print(f"📍 Addresses: {ELIGIBLE_ADDRESS_FILE}")
        print("\n💡 Next: FUND the eligible wallets, then CLAIM")
    else:
        print("\n⚠️  No wallets with empty token accounts")
    return 0


def run_claim(settings: Settings, chain: ChainClient, prompter: Prompter) -> int:
    header("💰 CLAIM")
    print("⚠️  Every wallet needs > 0.001 SOL to pay for fees!")
    wallets = load_wallets_or_exit(settings)

    stats = BatchCloser(chain, settings).claim_all(wallets)

    print()
    header("🎉 CLAIM FINISHED")
    print(stats.render())
    return 0


def run_fund(
    settings: Settings,
    chain: ChainClient,
    prompter: Prompter,
    amount_text: Optional[str] = None,
) -> int:
    header("💸 FUND")
    try:
        fund_kp = load_fund_keypair(settings.fund_file)
        addresses = load_addresses(ELIGIBLE_ADDRESS_FILE)
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    fund_address = str(fund_kp.pubkey())
    print(f"🏦 Fund wallet : {fund_address}")
    print(f"💰 Balance     : {fmt_sol(chain.get_balance(fund_address))} SOL")
    print(f"📂 Recipients  : {len(addresses)}")

    try:
        if amount_text is None:
            amount_text = prompter.ask(
                "\nHow much SOL per wallet? (recommended 0.001): "
            )
        amount = parse_sol_amount(amount_text)
    except ValidationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1

    disburser = Disburser(chain, settings, prompter)
    try:
        result = disburser.disburse_equal_amounts(
            addresses, sol_to_lamports(amount), fund_kp
        )
    except InsufficientFundsError as e:
        print(f"\n❌ {e}. Top up the fund wallet and try again.", file=sys.stderr)
        return 1
    except ValidationError as e:
        print(f"\n❌ {e}", file=sys.stderr)
        return 1
    if result.cancelled:
        print("❌ Cancelled")
        return 0

    print()
    header("🎉 FUND FINISHED")
    print(result.stats.render())
    balance_left = fmt_sol(chain.get_balance(fund_address))
    print(f"🏦 Fund wallet balance left: {balance_left} SOL")
    return 0


def run_collect(settings: Settings, chain: ChainClient, prompter: Prompter) -> int:
    header("📥 COLLECT")
    try:
        destination = str(load_fund_keypair(settings.fund_file).pubkey())
    except ConfigurationError as e:
        print(f"❌ {e}", file=sys.stderr)
        return 1
    print(f"📍 Recipient ({settings.fund_file}): {destination}")

    wallets = load_wallets_or_exit(settings)
    result = Collector(chain, settings, prompter).collect_all(wallets, destination)
    if result.cancelled:
        print("❌ Cancelled")
        return 0

    print()
    header("🎉 COLLECT FINISHED")
    print(result.stats.render())
    print(f"Recipient        : {destination}")
    return 0


Mode = Callable[[Settings, ChainClient, Prompter], int]

MENU: Dict[str, Mode] = {
    "1": run_check,
    "2": run_fund,
    "3": run_claim,
    "4": run_collect,
}


def run_menu(settings: Settings, chain: ChainClient, prompter: Prompter) -> int:
    while True:
        print()
        header("🚀 SOLANA TOKEN ACCOUNT CLOSER")
        print("\nChoose a mode:")
        print("1. CHECK   - How much SOL can be reclaimed")
        print("2. FUND    - Send SOL to eligible wallets (for fees)")
        print("3. CLAIM   - Close empty token accounts and reclaim SOL")
        print("4. COLLECT - Sweep all SOL into one wallet")
        print("5. Exit\n")

        try:
            choice = prompter.ask("Your choice (1-5): ").strip()
        except EOFError:
            return 0
        print()

        if choice == "5":
            print("👋 Bye!")
            return 0
        mode = MENU.get(choice)
        if mode is None:
            print("❌ Invalid choice!")
            continue

        try:
            mode(settings, chain, prompter)
        except (ConfigurationError, ValidationError) as e:
            print(f"❌ {e}", file=sys.stderr)


def _with_chain(args: argparse.Namespace, run: Mode) -> int:
    settings = Settings.from_env(rpc_url_override=args.rpc_url, env_file=args.env_file)
    prompter: Prompter = ConsolePrompter()
    if getattr(args, "yes", False):
        prompter = AutoConfirm()

    rpc = RpcClient(
        settings.rpc_url, timeout_s=args.timeout, commitment=settings.commitment
    )
    try:
        return run(settings, rpc, prompter)
    finally:
        rpc.close()


def cmd_menu(args: argparse.Namespace) -> int:
    return _with_chain(args, run_menu)


def cmd_check(args: argparse.Namespace) -> int:
    return _with_chain(args, run_check)


def cmd_claim(args: argparse.Namespace) -> int:
    return _with_chain(args, run_claim)


def cmd_fund(args: argparse.Namespace) -> int:
    return _with_chain(args, lambda s, c, p: run_fund(s, c, p, amount_text=args.amount))


def cmd_collect(args: argparse.Namespace) -> int:
    return _with_chain(args, run_collect)


def build_parser() -> argparse.ArgumentParser:
    p = argparse.ArgumentParser(
        prog="rent-reclaimer",
        description=(
            "Reclaim rent from empty Solana token accounts across many wallets."
        ),
    )
    p.add_argument("--verbose", action="store_true", help="Enable debug logging.")
    p.add_argument("--rpc-url", default=None, help="Override RPC URL (else use env).")
    p.add_argument("--timeout", type=float, default=60.0, help="RPC timeout seconds.")
    p.add_argument("--env-file", default=None, help="Path to a .env file.")
    p.set_defaults(func=cmd_menu)

    sub = p.add_subparsers(dest="cmd")

    m = sub.add_parser("menu", help="Interactive numbered menu (default).")
    m.set_defaults(func=cmd_menu)

    c = sub.add_parser("check", help="Find wallets with empty token accounts.")
    c.set_defaults(func=cmd_check)

    f = sub.add_parser("fund", help="Send SOL to every eligible wallet.")
    f.add_argument("--amount", default=None, help="SOL per wallet (else prompt).")
    f.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    f.set_defaults(func=cmd_fund)

    cl = sub.add_parser("claim", help="Close empty token accounts.")
    cl.set_defaults(func=cmd_claim)

    co = sub.add_parser("collect", help="Sweep every wallet into the fund wallet.")
    co.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    co.set_defaults(func=cmd_collect)

    return p


def main() -> None:
    parser = build_parser()
    args = parser.parse_args()
    setup_logging(args.verbose)
    try:
        code = args.func(args)
    except Exception as e:
        print(f"💥 Fatal error: {e}", file=sys.stderr)
        code = 1
    raise SystemExit(code)
