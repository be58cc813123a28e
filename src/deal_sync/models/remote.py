"""
Pipedrive payload models.

These mirror the JSON objects returned under the ``data`` key of the Pipedrive
v1 API. Only the attributes the sync reads are declared. Everything else, including
custom fields keyed by 40-character hashes, is retained through
``extra='allow'`` and read back with ``custom_field()``.

Declared attributes are typed ``Any`` where Pipedrive is known
to vary the shape: ``org_id``/``person_id`` are ints on some endpoints and
``{"value": ..., "name": ...}`` objects on others, and person ``email``/``phone``
are lists of ``{"value", "primary", "label"}`` items. Scalars such as titles,
names and product codes are typed ``Any`` too, since accounts routinely hold
numeric values there. The extractors render them as text.
"""

from typing import Any

from pydantic import BaseModel, ConfigDict


class PipedriveEntity(BaseModel):
    """Base for every Pipedrive object: an integer id plus arbitrary extras."""

    model_config = ConfigDict(extra='allow')

    id: int

    def custom_field(self, key: str) -> Any:
        """Return the raw value stored under a custom-field key, or None."""
        extras = self.model_extra or {}
        return extras.get(key)


class PipedriveDeal(PipedriveEntity):
    title: Any = None
    org_id: Any = None
    person_id: Any = None
    pipeline_id: Any = None
    status: Any = None
    stage_id: Any = None


class PipedriveOrganization(PipedriveEntity):
    name: Any = None
    address: Any = None


class PipedrivePerson(PipedriveEntity):
    org_id: Any = None
    first_name: Any = None
    last_name: Any = None
    email: Any = None
    phone: Any = None


class PipedriveProduct(BaseModel):
    """The catalog product nested inside a deal line item."""

    model_config = ConfigDict(extra='allow')

    code: Any = None
    name: Any = None


class PipedriveDealProduct(BaseModel):
    """A deal line item (``GET /deals/{id}/products``)."""

    model_config = ConfigDict(extra='allow')

    id: Any = None
    quantity: Any = None
    item_price: Any = None
    product: PipedriveProduct | None = None


class PipedriveNote(PipedriveEntity):
    content: Any = None
    deal_id: Any = None
    add_time: Any = None
    update_time: Any = None


class PipedriveFile(PipedriveEntity):
    deal_id: Any = None
    name: Any = None
    url: Any = None
    file_url: Any = None
    add_time: Any = None
    update_time: Any = None
