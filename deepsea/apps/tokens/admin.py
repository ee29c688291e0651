from django.contrib import admin
from .models import Collection, LedgerEvent, TokenRecord


@admin.register(Collection)
class CollectionAdmin(admin.ModelAdmin):
    list_display = ("name", "symbol", "address", "owner", "height")
    search_fields = ("name", "address", "owner")


@admin.register(TokenRecord)
class TokenRecordAdmin(admin.ModelAdmin):
    list_display = ("collection", "token_id", "name", "current_supply", "max_supply", "is_active")
    list_filter = ("is_active",)


@admin.register(LedgerEvent)
class LedgerEventAdmin(admin.ModelAdmin):
    list_display = ("collection", "block_number", "log_index", "name", "transaction_hash")
    list_filter = ("name",)
