from django.urls import path
from .views import token_detail_view, token_list_view, token_uri_view

urlpatterns = [
    path("<str:address>/tokens/", token_list_view, name="token_list"),
    path("<str:address>/tokens/<int:token_id>/", token_detail_view, name="token_detail"),
    path("<str:address>/tokens/<int:token_id>/uri", token_uri_view, name="token_uri"),
]
