import json

from django.core.management.base import BaseCommand, CommandError

from deepsea.apps.events.aggregator import filter_by_address, filter_by_token, summarize
from deepsea.apps.events.errors import ScanError
from deepsea.apps.events.scanner import EventScanner
from deepsea.apps.events.sources import ContractLogSource, LedgerLogSource
from deepsea.onchain.current import DeploymentRecord, estimate_deploy_block
from deepsea.onchain.prompts import add_common_arguments, contract_service, local_ledger


class Command(BaseCommand):
    help = "Scan TransferSingle/TransferBatch history of the collection and print events and a summary."

    def add_arguments(self, parser):
        parser.add_argument("--from-block", dest="from_block", type=int)
        parser.add_argument("--to-block", dest="to_block", type=int)
        parser.add_argument(
            "--since-deploy",
            action="store_true",
            help="Start from the block estimated from the deployment record's timestamp.",
        )
        parser.add_argument("--token-id", dest="token_id", type=int)
        parser.add_argument("--holder", dest="holder", help="Only events from or to this address.")
        parser.add_argument("--chunk-size", dest="chunk_size", type=int)
        parser.add_argument("--summary", action="store_true", help="Print only the summary.")
        parser.add_argument("--json", action="store_true", help="Print the raw result as JSON.")
        add_common_arguments(parser, local=True)

    def handle(self, *args, **options):
        if options["local"]:
            source = LedgerLogSource(local_ledger(options).get_collection())
        else:
            source = ContractLogSource(contract_service(options))

        scanner = EventScanner(source, chunk_size=options["chunk_size"])
        from_block = options["from_block"]
        if from_block is None and options["since_deploy"]:
            try:
                record = DeploymentRecord.load()
            except FileNotFoundError as e:
                raise CommandError(str(e))
            from_block = estimate_deploy_block(record.deployed_timestamp, source.block_number())
            self.stdout.write(f"Estimated deploy block: {from_block}")

        try:
            result = scanner.scan(from_block=from_block, to_block=options["to_block"])
        except ScanError as e:
            raise CommandError(str(e))

        events = result.events
        if options["token_id"] is not None:
            events = filter_by_token(events, options["token_id"])
        if options["holder"]:
            events = filter_by_address(events, options["holder"])
        summary = summarize(events)

        if options["json"]:
            payload = {
                "from_block": result.from_block,
                "to_block": result.to_block,
                "complete": result.complete,
                "skipped_ranges": [r.as_dict() for r in result.skipped_ranges],
                "summary": summary.as_dict(),
                "events": [] if options["summary"] else [event.as_dict() for event in events],
            }
            self.stdout.write(json.dumps(payload, indent=2))
            return

        self.stdout.write(f"Blocks {result.from_block}-{result.to_block}")
        if not options["summary"]:
            for event in events:
                if event.kind == "single":
                    moved = f"token {event.token_id} x{event.amount}"
                else:
                    moved = ", ".join(f"token {i} x{a}" for i, a in zip(event.token_ids, event.amounts))
                self.stdout.write(
                    f"[{event.date_time}] block {event.block_number} {event.from_address} -> "
                    f"{event.to_address}: {moved} ({event.transaction_hash})"
                )

        self.stdout.write(self.style.SUCCESS(json.dumps(summary.as_dict(), indent=2)))
        for skipped in result.skipped_ranges:
            self.stdout.write(
                self.style.WARNING(f"Skipped blocks {skipped.start}-{skipped.end}: {skipped.reason}")
            )
