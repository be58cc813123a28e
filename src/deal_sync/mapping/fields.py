"""
Pipedrive custom-field identifiers.

Pipedrive exposes custom fields on entities under opaque 40-character hash
keys. The table below names each key by purpose so extractors never carry
literal hashes. Any key can be overridden from the environment with
``PIPEDRIVE_FIELD_<PURPOSE>`` (e.g. ``PIPEDRIVE_FIELD_DEAL_SITE``) when a
different Pipedrive account is synced.
"""

import os

from pydantic import BaseModel, ConfigDict


def _field_key(purpose: str, default: str) -> str:
    return os.getenv(f'PIPEDRIVE_FIELD_{purpose}', '') or default


class OrganizationFields(BaseModel):
    """Custom-field keys on Pipedrive organizations."""

    model_config = ConfigDict(frozen=True)

    cif: str = '6d39d015a33921753410c1bab0b067ca93b8cf2c'
    phone: str = 'b4379db06dfbe0758d84c2c2dd45ef04fa093b6d'


class DealFields(BaseModel):
    """Custom-field keys on Pipedrive deals."""

    model_config = ConfigDict(frozen=True)

    hours: str = '38f11c8876ecde803a027fbf3c9041fda2ae7eb7'
    direction: str = '8b2a7570f5ba8aa4754f061cd9dc92fd778376a7'
    site: str = '676d6bd51e52999c582c01f67c99a35ed30bf6ae'
    caes: str = 'e1971bf3a21d48737b682bf8d864ddc5eb15a351'
    fundae: str = '245d60d4d18aec40ba888998ef92e5d00e494583'
    hotel_night: str = 'c3a6daf8eb5b4e59c3c07cda8e01f43439101269'


class CustomFieldMap(BaseModel):
    """All custom-field keys the sync reads."""

    model_config = ConfigDict(frozen=True)

    organization: OrganizationFields = OrganizationFields()
    deal: DealFields = DealFields()

    @classmethod
    def from_env(cls) -> 'CustomFieldMap':
        """Build the map, applying PIPEDRIVE_FIELD_* overrides."""
        org_defaults = OrganizationFields()
        deal_defaults = DealFields()
        return cls(
            organization=OrganizationFields(
                **{
                    name: _field_key(f'ORGANIZATION_{name.upper()}', getattr(org_defaults, name))
                    for name in OrganizationFields.model_fields
                }
            ),
            deal=DealFields(
                **{
                    name: _field_key(f'DEAL_{name.upper()}', getattr(deal_defaults, name))
                    for name in DealFields.model_fields
                }
            ),
        )


DEFAULT_CUSTOM_FIELDS = CustomFieldMap()
