# deepsea/apps/treasury/models.py
from django.db import models


class StableCoinBalance(models.Model):
    """Balance of one account in one stable-coin token (6-decimal minor units)."""
    token = models.CharField(max_length=42, db_index=True)
    account = models.CharField(max_length=42, db_index=True)
    amount = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["token", "account"], name="uniq_stablecoin_balance"),
        ]


class StableCoinAllowance(models.Model):
    token = models.CharField(max_length=42, db_index=True)
    owner = models.CharField(max_length=42)
    spender = models.CharField(max_length=42)
    amount = models.PositiveBigIntegerField(default=0)
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        constraints = [
            models.UniqueConstraint(fields=["token", "owner", "spender"], name="uniq_stablecoin_allowance"),
        ]
