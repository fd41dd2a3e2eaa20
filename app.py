from __future__ import annotations

import argparse
import asyncio
import getpass
import json
import sys
from typing import Any, Dict, List, Optional

from arcadegate.core.authority_app import AuthorityApp
from arcadegate.core.config import ConfigFsPaths, ConfigManager
from arcadegate.core.errors import ArcadeGateError
from arcadegate.core.logger import setup_logging


def _print(obj: Any) -> None:
    print(json.dumps(obj, indent=2, sort_keys=True, default=str))


async def _require_admin(app: AuthorityApp) -> None:
    decision = await app.guard_admin()
    if not decision.allowed:
        raise SystemExit("Admin session required: run `login-admin` first.")


async def _run(args: argparse.Namespace) -> int:
    fs = ConfigFsPaths(args.root)
    cm = ConfigManager(fs=fs)
    cfg = cm.load()
    logger = setup_logging(fs.resolve(cfg.logging.log_dir))
    cm.logger = logger
    app = await AuthorityApp.open(cfg, fs=fs, logger=logger)
    try:
        return await _dispatch(app, args)
    finally:
        await app.close()


async def _dispatch(app: AuthorityApp, args: argparse.Namespace) -> int:
    cmd = args.command
    if cmd == "init":
        boot = app.bootstrap
        _print({"admin_created": bool(boot and boot.admin_created), "demo_license_created": bool(boot and boot.demo_license_created)})
        return 0

    if cmd == "login":
        ok = await app.login(args.key)
        _print({"authenticated": ok})
        return 0 if ok else 1

    if cmd == "check-game":
        ok = await app.login(args.key)
        decision = app.guard_game(args.game)
        _print({"authenticated": ok, "allowed": decision.allowed, "redirect_to": decision.redirect_to})
        return 0 if decision.allowed else 1

    if cmd == "login-admin":
        password = args.password if args.password is not None else getpass.getpass("Admin password: ")
        ok = await app.login_admin(args.username, password)
        _print({"admin": ok})
        return 0 if ok else 1

    if cmd == "logout-admin":
        name = None
        if await app.ensure_session_restored(args.username):
            name = app.directory.current_admin_username()
            await app.logout_admin()
        _print({"admin": False, "logged_out": name})
        return 0 if name else 1

    # everything below needs an admin session (restored from the store)
    await _require_admin(app)
    d = app.directory

    if cmd == "issue":
        lic = await d.generate_license(args.days, args.game or None)
        _print({"key": lic.key, "expiration_days": lic.expiration_days, "allowed_games": lic.allowed_games or "all"})
        return 0
    if cmd == "revoke":
        await d.revoke_license(args.key)
        _print({"revoked": args.key})
        return 0
    if cmd == "list":
        _print([_license_row(lic) for lic in d.get_generated_licenses()])
        return 0
    if cmd == "accounts":
        _print([a.model_dump() for a in d.get_admin_accounts()])
        return 0
    if cmd == "create-admin":
        password = args.password if args.password is not None else getpass.getpass(f"Password for {args.username}: ")
        ok = await d.create_admin_account(args.username, password, args.role)
        _print({"created": ok})
        return 0 if ok else 1
    if cmd == "delete-admin":
        ok = await d.delete_admin_account(args.username)
        _print({"deleted": ok})
        return 0 if ok else 1
    raise SystemExit(f"Unknown command: {cmd}")


def _license_row(lic) -> Dict[str, Any]:  # noqa: ANN001
    if not lic.used_at:
        usage = "Not Used"
    else:
        usage = f"Used by: {lic.used_by}" if lic.used_by else "Used"
    return {
        "key": lic.key,
        "created_at": lic.created_at,
        "expiration_days": lic.expiration_days,
        "created_by": lic.created_by,
        "active": lic.is_active,
        "usage": usage,
        "games": "All Games" if lic.is_unrestricted else lic.allowed_games,
    }


def build_parser() -> argparse.ArgumentParser:
    ap = argparse.ArgumentParser(description="arcadegate license and admin authority")
    ap.add_argument("--root", default=".", help="Directory holding config/, runtime/ and logs/.")
    sub = ap.add_subparsers(dest="command", required=True)

    sub.add_parser("init", help="Create config and seed the store.")

    p = sub.add_parser("login", help="Check a license key.")
    p.add_argument("key")

    p = sub.add_parser("check-game", help="Check a license key against one game.")
    p.add_argument("key")
    p.add_argument("game")

    p = sub.add_parser("login-admin", help="Start an admin session.")
    p.add_argument("username")
    p.add_argument("--password", default=None)

    p = sub.add_parser("logout-admin", help="End an admin session.")
    p.add_argument(
        "--username",
        default=None,
        help="Admin whose session to end. Without it, the first live admin session found is ended.",
    )

    p = sub.add_parser("issue", help="Generate a license.")
    p.add_argument("--days", type=int, default=30)
    p.add_argument("--game", action="append", help="Restrict to a game (repeatable). Omit for all games.")

    p = sub.add_parser("revoke", help="Revoke a license.")
    p.add_argument("key")

    sub.add_parser("list", help="List generated licenses.")
    sub.add_parser("accounts", help="List admin accounts.")

    p = sub.add_parser("create-admin", help="Create an admin account (super admin only).")
    p.add_argument("username")
    p.add_argument("--role", choices=["admin", "super_admin"], default="admin")
    p.add_argument("--password", default=None)

    p = sub.add_parser("delete-admin", help="Delete an admin account (super admin only).")
    p.add_argument("username")
    return ap


def main(argv: Optional[List[str]] = None) -> None:
    args = build_parser().parse_args(argv)
    try:
        code = asyncio.run(_run(args))
    except ArcadeGateError as e:
        print(f"Error: {e.user_message}", file=sys.stderr)
        print(json.dumps(e.to_dict(), sort_keys=True), file=sys.stderr)
        code = 2
    raise SystemExit(code)


if __name__ == "__main__":
    main()
