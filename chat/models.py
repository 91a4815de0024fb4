import uuid

from django.db import models


class ClientStore(models.Model):
    """Key-value storage owned by one chat client (the browser's local storage)."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    def __str__(self) -> str:
        return f"ClientStore({self.id})"


class StoredValue(models.Model):
    """A single string value saved under a key in a client store."""

    store = models.ForeignKey(ClientStore, related_name="entries", on_delete=models.CASCADE)
    key = models.CharField(max_length=64)
    value = models.TextField()
    updated_at = models.DateTimeField(auto_now=True)

    class Meta:
        ordering = ["key"]
        constraints = [
            models.UniqueConstraint(fields=["store", "key"], name="unique_store_key"),
        ]

    def __str__(self) -> str:
        return f"{self.key} @ {self.store_id}"
