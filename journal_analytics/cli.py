"""CLI tool for admin operations.

Usage:
    python -m journal_analytics.cli create-user
    python -m journal_analytics.cli create-account <username> <account name> [starting balance]
    python -m journal_analytics.cli recover-orphans <username>
"""

import sys
import getpass

from sqlmodel import Session, select

from journal_analytics.database import engine, create_db_and_tables
from journal_analytics.models.account import Account
from journal_analytics.models.user import User
from journal_analytics.services.auth import (
    generate_api_key,
    generate_totp_secret,
    get_totp_uri,
    hash_password,
)
from journal_analytics.utils.logging import setup_logging


def _get_user(session: Session, username: str) -> User:
    user = session.exec(select(User).where(User.username == username)).first()
    if not user:
        print(f"User '{username}' not found.")
        sys.exit(1)
    return user


def create_user():
    """Create a journal user with TOTP setup."""
    create_db_and_tables()

    username = input("Username: ").strip()
    if not username:
        print("Username cannot be empty.")
        sys.exit(1)

    with Session(engine) as session:
        existing = session.exec(select(User).where(User.username == username)).first()
        if existing:
            print(f"User '{username}' already exists.")
            sys.exit(1)

    password = getpass.getpass("Password: ")
    password_confirm = getpass.getpass("Confirm password: ")
    if password != password_confirm:
        print("Passwords do not match.")
        sys.exit(1)

    totp_secret = generate_totp_secret()
    user = User(
        username=username,
        hashed_password=hash_password(password),
        totp_secret=totp_secret,
    )
    with Session(engine) as session:
        session.add(user)
        session.commit()

    print(f"\nUser '{username}' created successfully.")
    print(f"\nTOTP Secret: {totp_secret}")
    print(f"TOTP URI: {get_totp_uri(totp_secret, username)}")


def create_account(username: str, name: str, balance: float = 0.0):
    """Register a broker account and print the API key its terminal posts events with."""
    create_db_and_tables()

    with Session(engine) as session:
        user = _get_user(session, username)
        account = Account(
            user_id=user.id,
            name=name,
            api_key=generate_api_key(),
            balance_start=balance,
            equity_current=balance,
        )
        session.add(account)
        session.commit()
        session.refresh(account)

    print(f"Account '{name}' (id={account.id}) created for '{username}'.")
    print(f"API key: {account.api_key}")


def recover_orphans(username: str):
    """Run orphan exit recovery for one user from the shell."""
    from journal_analytics.services.orphan_recovery import recover_orphan_exits

    setup_logging()
    with Session(engine) as session:
        user = _get_user(session, username)
        result = recover_orphan_exits(session, user.id)

    print(result.message)
    for label in result.trades:
        print(f"  recovered {label}")
    for label in result.failed:
        print(f"  FAILED    {label}")


def main():
    if len(sys.argv) < 2:
        print("Usage: python -m journal_analytics.cli <command>")
        print("Commands: create-user, create-account, recover-orphans")
        sys.exit(1)

    command = sys.argv[1]
    if command == "create-user":
        create_user()
    elif command == "create-account" and len(sys.argv) >= 4:
        balance = float(sys.argv[4]) if len(sys.argv) > 4 else 0.0
        create_account(sys.argv[2], sys.argv[3], balance)
    elif command == "recover-orphans" and len(sys.argv) >= 3:
        recover_orphans(sys.argv[2])
    else:
        print(f"Unknown command or missing arguments: {' '.join(sys.argv[1:])}")
        sys.exit(1)


if __name__ == "__main__":
    main()
