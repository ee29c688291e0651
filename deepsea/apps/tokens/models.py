# deepsea/apps/tokens/models.py
import uuid
from django.db import models


class Collection(models.Model):
    """One deployed multi-token collection (the contract's storage)."""
    address = models.CharField(max_length=42, unique=True)
    owner = models.CharField(max_length=42, db_index=True)
    name = models.CharField(max_length=128)
    symbol = models.CharField(max_length=32)
    base_uri = models.TextField()  # template with a single {id} marker
    contract_uri = models.TextField(blank=True, default="")  # collection-level metadata
    usdc_address = models.CharField(max_length=42, blank=True, default="")
    height = models.PositiveBigIntegerField(default=0)  # one block per state-changing call
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self):
        return f"{self.name} ({self.address})"


class TokenRecord(models.Model):
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name="tokens")
    token_id = models.PositiveBigIntegerField()
    name = models.CharField(max_length=128)
    description = models.TextField(blank=True, default="")
    max_supply = models.PositiveBigIntegerField()
    current_supply = models.PositiveBigIntegerField(default=0)  # never above max_supply
    is_active = models.BooleanField(default=True)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["token_id"]
        constraints = [
            models.UniqueConstraint(fields=["collection", "token_id"], name="uniq_token_per_collection"),
        ]

    def as_dict(self):
        return {
            "id": self.token_id,
            "name": self.name,
            "description": self.description,
            "max_supply": self.max_supply,
            "current_supply": self.current_supply,
            "is_active": self.is_active,
        }


class HolderBalance(models.Model):
    """Per (holder, token id) quantity; sums to the token's current_supply."""
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name="balances")
    holder = models.CharField(max_length=42, db_index=True)
    token_id = models.PositiveBigIntegerField()
    amount = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["collection", "holder", "token_id"], name="uniq_holder_balance"),
        ]


class OperatorApproval(models.Model):
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name="approvals")
    holder = models.CharField(max_length=42)
    operator = models.CharField(max_length=42)
    approved = models.BooleanField(default=False)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["collection", "holder", "operator"], name="uniq_operator_approval"),
        ]


class LedgerEvent(models.Model):
    """Append-only event log, replayable like contract logs."""
    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    collection = models.ForeignKey(Collection, on_delete=models.CASCADE, related_name="events")
    block_number = models.PositiveBigIntegerField(db_index=True)
    log_index = models.PositiveIntegerField()
    name = models.CharField(max_length=32, db_index=True)  # TransferSingle, TokenMinted, ...
    args = models.JSONField(default=dict, blank=True)
    transaction_hash = models.CharField(max_length=66, db_index=True)
    timestamp = models.PositiveBigIntegerField()  # unix seconds of the block
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["block_number", "log_index"]
        indexes = [models.Index(fields=["collection", "name", "block_number"])]
