"""CLI commands for admin setup and scheduled maintenance."""

import argparse
import asyncio
import getpass
import sys

import httpx
from sqlalchemy.orm import Session

from app.config import settings
from app.database import SessionLocal
from app.models import ProfileRole
from app.services.auth import get_auth_provider
from app.services.email_sender import WebhookEmailSender
from app.services.errors import ServiceError
from app.services.invitation_service import InvitationService
from app.services.notification_service import NotificationDispatcher
from app.services.provisioning_service import AccountProvisioner


def create_admin(email: str, password: str | None = None) -> None:
    """Create a confirmed admin account with its profile."""
    db: Session = SessionLocal()

    try:
        # Get password if not provided
        if not password:
            password = getpass.getpass("Password: ")
            password_confirm = getpass.getpass("Confirm password: ")
            if password != password_confirm:
                print("Error: Passwords do not match.")
                sys.exit(1)

        provisioner = AccountProvisioner(db, get_auth_provider())
        try:
            user, _ = asyncio.run(_provision_admin(provisioner, email, password))
        except ServiceError as e:
            print(f"Error: {e.message}")
            sys.exit(1)

        print(f"Admin user created successfully: {user.email}")

    finally:
        db.close()


async def _provision_admin(provisioner: AccountProvisioner, email: str, password: str):
    user, profile = await provisioner.provision(
        email, password, role=ProfileRole.ADMIN.value
    )
    await provisioner.auth_provider.confirm_email(provisioner.db, user)
    return user, profile


def expire_tokens() -> None:
    """Flip stale pending invites to expired."""
    db: Session = SessionLocal()

    try:
        count = InvitationService(db).expire_stale()
        print(f"Expired {count} invite(s).")
    finally:
        db.close()


def dispatch_notifications(batch_size: int | None = None) -> None:
    """Run one notification email dispatch batch (for cron)."""
    db: Session = SessionLocal()

    try:
        try:
            result = asyncio.run(_dispatch(db, batch_size))
        except ServiceError as e:
            print(f"Error: {e.message}")
            sys.exit(1)
        print(result.message)
        if result.errors:
            sys.exit(2)
    finally:
        db.close()


async def _dispatch(db: Session, batch_size: int | None):
    async with httpx.AsyncClient(timeout=settings.webhook_timeout) as client:
        dispatcher = NotificationDispatcher(db, WebhookEmailSender(client))
        return await dispatcher.dispatch_pending(batch_size)


def positive_int(value: str) -> int:
    """argparse type for counts that must be at least 1."""
    try:
        number = int(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"invalid int value: {value!r}") from None
    if number < 1:
        raise argparse.ArgumentTypeError("must be at least 1")
    return number


def main():
    parser = argparse.ArgumentParser(description="Formtrack CLI")
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    # create-admin command
    create_admin_parser = subparsers.add_parser(
        "create-admin", help="Create an admin user"
    )
    create_admin_parser.add_argument(
        "--email", required=True, help="Admin email address"
    )
    create_admin_parser.add_argument(
        "--password", help="Admin password (will prompt if not provided)"
    )

    subparsers.add_parser(
        "expire-tokens", help="Mark pending invites past their expiry as expired"
    )

    dispatch_parser = subparsers.add_parser(
        "dispatch-notifications", help="Send one batch of pending notification emails"
    )
    dispatch_parser.add_argument(
        "--batch-size", type=positive_int, default=None, help="Notifications per batch"
    )

    args = parser.parse_args()

    if args.command == "create-admin":
        create_admin(args.email, args.password)
    elif args.command == "expire-tokens":
        expire_tokens()
    elif args.command == "dispatch-notifications":
        dispatch_notifications(args.batch_size)
    else:
        parser.print_help()
        sys.exit(1)


if __name__ == "__main__":
    main()
