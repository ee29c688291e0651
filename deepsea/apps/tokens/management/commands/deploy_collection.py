from django.conf import settings
from django.core.management.base import BaseCommand, CommandError

from deepsea.apps.tokens.ledger import TokenLedger
from deepsea.apps.tokens.services.base_contract import deploy_contract
from deepsea.apps.tokens.services.collection_contract import CollectionContractService
from deepsea.onchain.current import DeploymentRecord, explorer_address_url, network_name


class Command(BaseCommand):
    help = "Deploy the collection (on-chain from the compiled artifact, or as a local ledger) and record it in .current.json."

    def add_arguments(self, parser):
        parser.add_argument(
            "--local", action="store_true", help="Create a local ledger collection instead of deploying."
        )
        parser.add_argument("--owner", dest="owner", help="Owner address (defaults to ADMIN_ADDRESS).")
        parser.add_argument("--base-uri", dest="base_uri", help="Metadata URI template with {id}.")
        parser.add_argument(
            "--no-record", action="store_true", help="Do not write the deployment record file."
        )

    def handle(self, *args, **options):
        owner = options["owner"] or settings.ADMIN_ADDRESS

        if options["local"]:
            ledger = TokenLedger.deploy(owner=owner, base_uri=options["base_uri"])
            collection = ledger.get_collection()
            address, chain_id = collection.address, 31337
            tokens = [record.as_dict() for record in ledger.active_tokens()]
        else:
            artifact = settings.COLLECTION_ARTIFACT_PATH
            if not artifact.exists():
                raise CommandError(f"Compiled contract not found at {artifact}; compile it first.")
            try:
                deployment = deploy_contract(artifact, from_address=owner)
            except ConnectionError as e:
                raise CommandError(str(e))
            address, chain_id = deployment["contract_address"], deployment["chain_id"]
            service = CollectionContractService(address)
            if options["base_uri"]:
                service.set_base_uri(options["base_uri"])
            tokens = [
                {"id": info["token_id"], **info} for info in service.get_active_tokens(limit=3)
            ]

        self.stdout.write(self.style.SUCCESS(f"Collection deployed to: {address}"))
        if not options["no_record"]:
            path = DeploymentRecord.create(address, chain_id, owner).save()
            self.stdout.write(f"Contract info saved to: {path}")

        self.stdout.write("Initial tokens:")
        for token in tokens:
            self.stdout.write(f"  Token {token['id']}: {token['name']} (Max Supply: {token['max_supply']})")

        self.stdout.write(f"Network: {network_name(chain_id)} (Chain ID: {chain_id})")
        explorer = explorer_address_url(chain_id, address)
        if explorer:
            self.stdout.write(f"Explorer: {explorer}")
