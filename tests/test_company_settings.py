"""Tests for company settings defaults, merging and persistence."""

import json

from feecalc.company_settings import (
    COMPANY_SETTINGS_KEY,
    DEFAULT_COMPANY_SETTINGS,
    CompanyAddress,
    CompanySettingsRepository,
    format_company_address,
    merge_with_defaults,
)


def test_merge_with_defaults_keeps_missing_fields() -> None:
    settings = merge_with_defaults({"name": "Acme Ltd", "tax_id": "GB123"})

    assert settings.name == "Acme Ltd"
    assert settings.tax_id == "GB123"
    assert settings.email == DEFAULT_COMPANY_SETTINGS.email
    assert settings.address == DEFAULT_COMPANY_SETTINGS.address


def test_merge_with_defaults_does_not_mutate_defaults() -> None:
    merge_with_defaults({"name": "Other"})
    assert DEFAULT_COMPANY_SETTINGS.name == "Your Company Name"


def test_format_company_address_skips_empty_parts() -> None:
    assert format_company_address(DEFAULT_COMPANY_SETTINGS.address) == (
        "123 Business St\nCity, State, 12345\nCountry"
    )
    assert format_company_address(CompanyAddress(city="Leeds", country="UK")) == "Leeds\nUK"


def test_repository_returns_defaults_when_empty(memory_store) -> None:
    assert CompanySettingsRepository(memory_store).get() == DEFAULT_COMPANY_SETTINGS


def test_repository_save_and_reset(memory_store) -> None:
    repository = CompanySettingsRepository(memory_store)
    repository.save(merge_with_defaults({"name": "Acme", "email": "a@acme.test"}))

    assert repository.get().name == "Acme"
    assert repository.reset_to_defaults() == DEFAULT_COMPANY_SETTINGS
    assert memory_store.get(COMPANY_SETTINGS_KEY) is None


def test_repository_recovers_from_corrupt_value(memory_store) -> None:
    memory_store.set(COMPANY_SETTINGS_KEY, "{oops")
    assert CompanySettingsRepository(memory_store).get() == DEFAULT_COMPANY_SETTINGS


def test_import_requires_name_and_email(memory_store) -> None:
    repository = CompanySettingsRepository(memory_store)

    assert repository.import_json('{"name": "Acme"}') is False
    assert repository.import_json("[]") is False
    assert repository.import_json("nope") is False
    assert repository.get() == DEFAULT_COMPANY_SETTINGS

    assert repository.import_json('{"name": "Acme", "email": "a@acme.test"}') is True
    assert repository.get().phone == DEFAULT_COMPANY_SETTINGS.phone


def test_export_json(memory_store) -> None:
    repository = CompanySettingsRepository(memory_store)
    data = json.loads(repository.export_json())
    assert data["name"] == "Your Company Name"
    assert data["address"]["zip_code"] == "12345"
