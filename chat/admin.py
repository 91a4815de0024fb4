from django.contrib import admin

from .models import ClientStore, StoredValue


@admin.register(ClientStore)
class ClientStoreAdmin(admin.ModelAdmin):
    list_display = ("id", "created_at", "updated_at")
    search_fields = ("id",)
    ordering = ("-created_at",)


@admin.register(StoredValue)
class StoredValueAdmin(admin.ModelAdmin):
    list_display = ("id", "store", "key", "updated_at")
    list_filter = ("key",)
    search_fields = ("value",)
    ordering = ("-updated_at",)
