import json

from django.core.management.base import BaseCommand

from deepsea.apps.tokens.services.metadata import describe_tokens
from deepsea.onchain.prompts import add_common_arguments, contract_service, local_ledger


class Command(BaseCommand):
    help = "List active tokens with their metadata URIs, check the URIs and fetch the documents."

    def add_arguments(self, parser):
        parser.add_argument("--token-id", dest="token_id", type=int, help="Only inspect this token.")
        parser.add_argument("--max", dest="max_token_ids", type=int, help="Highest token id to look at.")
        parser.add_argument("--no-check", action="store_true", help="Do not probe the URIs.")
        parser.add_argument("--no-fetch", action="store_true", help="Probe the URIs but skip the documents.")
        parser.add_argument("--json", action="store_true", help="Print the raw result as JSON.")
        add_common_arguments(parser, local=True)

    def handle(self, *args, **options):
        source = local_ledger(options) if options["local"] else contract_service(options)
        result = describe_tokens(
            source,
            token_id=options["token_id"],
            max_token_ids=options["max_token_ids"],
            check_accessibility=not options["no_check"],
            fetch=not options["no_fetch"],
        )

        if options["json"]:
            self.stdout.write(json.dumps(result.as_dict(), indent=2, default=str))
            return

        if not result.success:
            self.stdout.write(self.style.ERROR(result.error))
            return

        for token in result.tokens:
            marker = "OK " if token.accessible else "-- "
            self.stdout.write(
                f"{marker}Token {token.id}: {token.name} ({token.current_supply}/{token.max_supply})"
            )
            self.stdout.write(f"    URI: {token.uri}")
            if token.status_code is not None:
                self.stdout.write(f"    Status: {token.status_code}")
            if token.metadata is not None:
                self.stdout.write(f"    Metadata: {json.dumps(token.metadata)}")

        self.stdout.write(
            f"Total: {result.total_tokens}, accessible: {result.accessible_tokens}, "
            f"inaccessible: {result.inaccessible_tokens}"
        )
