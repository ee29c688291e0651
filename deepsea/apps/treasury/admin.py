from django.contrib import admin
from .models import StableCoinAllowance, StableCoinBalance


@admin.register(StableCoinBalance)
class StableCoinBalanceAdmin(admin.ModelAdmin):
    list_display = ("token", "account", "amount", "updated_at")
    search_fields = ("account",)


@admin.register(StableCoinAllowance)
class StableCoinAllowanceAdmin(admin.ModelAdmin):
    list_display = ("token", "owner", "spender", "amount")
