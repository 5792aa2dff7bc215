import pytest

from src.enterprise_suite.enterprise_suite.core.enums import CustomFieldType
from src.enterprise_suite.enterprise_suite.core.exceptions import ValidationError
from src.enterprise_suite.enterprise_suite.events.model import CustomField
from src.enterprise_suite.enterprise_suite.events.qr import registration_qr_png
from src.enterprise_suite.enterprise_suite.events.service import validate_custom_fields


def _field(name, kind, *, required=False, options=()):
    return CustomField(
        id=1, event_id=1, field_name=name, field_label=name.title(), field_type=kind, is_required=required, options=options
    )


def test_optional_empty_fields_are_dropped():
    fields = [_field("notes", CustomFieldType.TEXT)]
    assert validate_custom_fields(fields, {"notes": ""}) == {}


def test_cleaning_by_type():
    fields = [
        _field("contact", CustomFieldType.EMAIL),
        _field("born", CustomFieldType.DATE),
        _field("games", CustomFieldType.CHECKBOX, options=("chess", "carrom")),
    ]
    cleaned = validate_custom_fields(fields, {"contact": "x@example.com", "born": "2000-01-31", "games": "chess"})
    assert cleaned == {"contact": "x@example.com", "born": "2000-01-31", "games": ["chess"]}


def test_errors_are_collected_per_field():
    fields = [
        _field("contact", CustomFieldType.EMAIL, required=True),
        _field("born", CustomFieldType.DATE),
        _field("games", CustomFieldType.CHECKBOX, options=("chess",)),
    ]
    with pytest.raises(ValidationError) as info:
        validate_custom_fields(fields, {"born": "yesterday", "games": ["chess", "golf"]})
    assert set(info.value.errors) == {"contact", "born", "games"}


def test_registration_qr_is_png():
    assert registration_qr_png("abc").startswith(b"\x89PNG")
