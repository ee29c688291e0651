"""Shared pieces of the collection management commands."""

from django.conf import settings
from django.core.management.base import CommandError

from .current import AddressBook


def add_common_arguments(parser, local: bool = False):
    parser.add_argument(
        "--address",
        dest="address",
        help="Collection address (defaults to COLLECTION_ADDRESS or .current.json).",
    )
    parser.add_argument("--yes", action="store_true", help="Skip the confirmation prompt.")
    if local:
        parser.add_argument(
            "--local", action="store_true", help="Use the local ledger instead of the deployed contract."
        )


def confirm(command, options, message: str) -> bool:
    """Ask for y/N unless --yes was given; a decline prints 'cancelled'."""
    if options.get("yes"):
        return True
    answer = input(f"{message} (y/N): ").strip().lower()
    if answer in {"y", "yes"}:
        return True
    command.stdout.write(command.style.WARNING("Operation cancelled."))
    return False


def resolve_wallet(value: str) -> str:
    """Saved wallet name or raw address -> checksum address"""
    try:
        return AddressBook().resolve(value)
    except ValueError as e:
        raise CommandError(str(e))


def require_admin_is_owner(service):
    owner = service.get_owner()
    if owner.lower() != settings.ADMIN_ADDRESS.lower():
        raise CommandError(f"Only the contract owner can do this (owner {owner}, admin {settings.ADMIN_ADDRESS})")
    return owner


def contract_service(options):
    from deepsea.apps.tokens.services.collection_contract import CollectionContractService

    try:
        return CollectionContractService(options.get("address"))
    except (ConnectionError, FileNotFoundError, ValueError) as e:
        raise CommandError(str(e))


def local_ledger(options):
    from deepsea.apps.tokens.ledger import TokenLedger
    from deepsea.apps.tokens.models import Collection
    from deepsea.apps.tokens.services.collection_contract import current_collection_address

    try:
        address = options.get("address") or current_collection_address()
        return TokenLedger(Collection.objects.get(address=address))
    except FileNotFoundError as e:
        raise CommandError(str(e))
    except Collection.DoesNotExist:
        raise CommandError(f"No local collection at {address}")
