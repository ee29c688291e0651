from django.http import JsonResponse
from django.shortcuts import get_object_or_404

from .errors import NotFound
from .ledger import TokenLedger
from .models import Collection


def _ledger(address: str) -> TokenLedger:
    return TokenLedger(get_object_or_404(Collection, address__iexact=address))


def token_list_view(request, address):
    ledger = _ledger(address)
    collection = ledger.get_collection()
    return JsonResponse({
        "name": collection.name,
        "symbol": collection.symbol,
        "contract_uri": collection.contract_uri,
        "tokens": [record.as_dict() for record in ledger.active_tokens()],
    })


def token_detail_view(request, address, token_id):
    ledger = _ledger(address)
    try:
        uri = ledger.uri(token_id)
    except NotFound as e:
        return JsonResponse(e.as_dict(), status=404)
    data = ledger.get_token_info(token_id).as_dict()
    data["uri"] = uri
    return JsonResponse(data)


def token_uri_view(request, address, token_id):
    ledger = _ledger(address)
    try:
        return JsonResponse({"id": token_id, "uri": ledger.uri(token_id)})
    except NotFound as e:
        return JsonResponse(e.as_dict(), status=404)
