from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from deepsea.apps.tokens.errors import LedgerError
from deepsea.apps.tokens.uri import validate_uri_template
from deepsea.onchain.prompts import (
    add_common_arguments,
    confirm,
    contract_service,
    local_ledger,
    require_admin_is_owner,
)


class Command(BaseCommand):
    help = "Update a token's name/description and/or the collection base URI."

    def add_arguments(self, parser):
        parser.add_argument("--token-id", dest="token_id", type=int)
        parser.add_argument("--name", dest="name")
        parser.add_argument("--description", dest="description")
        parser.add_argument("--base-uri", dest="base_uri", help="New URI template, e.g. https://host/tokens/{id}")
        add_common_arguments(parser, local=True)

    def handle(self, *args, **options):
        token_id, base_uri = options["token_id"], options["base_uri"]
        if token_id is None and not base_uri:
            raise CommandError("Provide --token-id with --name/--description, and/or --base-uri")

        if base_uri:
            check = validate_uri_template(base_uri)
            if not check.is_valid:
                raise CommandError(f"Invalid URI template: {base_uri}")
            for suggestion in check.suggestions:
                self.stdout.write(self.style.WARNING(suggestion))

        local = options["local"]
        if local:
            ledger = local_ledger(options)
            current = ledger.get_token_info(token_id) if token_id is not None else None
            current = current.as_dict() if current is not None else None
        else:
            service = contract_service(options)
            require_admin_is_owner(service)
            current = service.get_token_info(token_id) if token_id is not None else None

        if token_id is not None:
            if current is None or not current["is_active"]:
                raise CommandError(f"Token {token_id} does not exist")
            name = options["name"] or current["name"]
            description = options["description"] if options["description"] is not None else current["description"]
            self.stdout.write(f"Token {token_id}: '{current['name']}' -> '{name}'")
        if base_uri:
            self.stdout.write(f"Base URI -> {base_uri}")

        if not confirm(self, options, "Apply these changes?"):
            return

        try:
            if token_id is not None:
                if local:
                    ledger.update_token_info(settings.ADMIN_ADDRESS, token_id, name, description)
                else:
                    service.update_token_info(token_id, name, description)
            if base_uri:
                if local:
                    ledger.set_base_uri(settings.ADMIN_ADDRESS, base_uri)
                else:
                    service.set_base_uri(base_uri)
        except LedgerError as e:
            raise CommandError(f"Update failed: {e.detail}")

        self.stdout.write(self.style.SUCCESS("Metadata updated."))
