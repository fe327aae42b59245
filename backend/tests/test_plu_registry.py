"""
Unit tests for the static PLU table and registry lookup.
Run: python -m pytest backend/tests/test_plu_registry.py -v
"""
import json

import pytest


def _write_table(path, codes, version="test"):
    path.write_text(json.dumps({"table_version": version, "codes": codes}), encoding="utf-8")
    return path


def test_every_table_entry_matches_shape_rule():
    """Stored is_organic equals (5 digits and leading 9) for every entry in the shipped table."""
    from core.plu import PLURegistry
    reg = PLURegistry()
    assert len(reg) > 0
    for entry in reg:
        expected = len(entry.code) == 5 and entry.code[0] == "9"
        assert entry.is_organic == expected, entry.code
        assert reg.lookup(entry.code).is_organic == expected


def test_shipped_table_has_canonical_banana_codes():
    """4011 is conventional banana, 94011 its organic counterpart."""
    from core.plu import lookup_plu
    conventional = lookup_plu("4011")
    organic = lookup_plu("94011")
    assert conventional.is_organic is False
    assert "banana" in conventional.meaning.lower()
    assert organic.is_organic is True
    assert "banana" in organic.meaning.lower()


def test_five_digit_non_nine_code_is_not_organic():
    """Legacy 8-prefixed codes resolve as non-organic."""
    from core.plu import lookup_plu
    assert lookup_plu("84011").is_organic is False


def test_unknown_code_raises_not_found():
    """A well-formed code absent from the table raises PLUNotFoundError."""
    from core.errors import PLUNotFoundError
    from core.plu import lookup_plu
    with pytest.raises(PLUNotFoundError) as exc:
        lookup_plu("99999")
    assert exc.value.code == "99999"


@pytest.mark.parametrize("code", ["401", "940111", "40a1", " 4011", "", None, 4011])
def test_malformed_code_raises_validation_error(code):
    """Lookup does not sanitize: bad shapes are a caller error."""
    from core.errors import ValidationError
    from core.plu import lookup_plu
    with pytest.raises(ValidationError):
        lookup_plu(code)


def test_is_organic_code():
    from core.plu import is_organic_code
    assert is_organic_code("94011")
    assert not is_organic_code("4011")
    assert not is_organic_code("84011")
    assert not is_organic_code("9401")


def test_registry_refuses_table_with_wrong_flag(tmp_path):
    """A table whose stored flag contradicts the code shape is refused at load."""
    from core.plu import PLURegistry
    path = _write_table(tmp_path / "bad.json", {"4011": {"meaning": "Banana", "is_organic": True}})
    with pytest.raises(ValueError):
        PLURegistry(table_path=path)


def test_registry_refuses_bad_code_shape(tmp_path):
    from core.plu import PLURegistry
    path = _write_table(tmp_path / "bad.json", {"401": {"meaning": "?", "is_organic": False}})
    with pytest.raises(ValueError):
        PLURegistry(table_path=path)


def test_registry_missing_file_raises(tmp_path):
    """Missing table fails loudly instead of degrading every sticker read to NO_PLU_CODE."""
    from core.plu import PLURegistry
    with pytest.raises(FileNotFoundError):
        PLURegistry(table_path=tmp_path / "absent.json")


def test_misconfigured_table_path_fails_before_reconciling(tmp_path, monkeypatch):
    """A bad PLU_TABLE_PATH never yields the model's call on a conventional sticker."""
    from core.plu import PLURegistry
    monkeypatch.setenv("PLU_TABLE_PATH", str(tmp_path / "absent.json"))
    with pytest.raises(FileNotFoundError):
        PLURegistry()


def test_registry_loads_custom_table(tmp_path):
    from core.plu import PLURegistry
    path = _write_table(
        tmp_path / "codes.json",
        {"4062": {"meaning": "Cucumber", "is_organic": False}, "94062": {"meaning": "Cucumber", "is_organic": True}},
        version="7",
    )
    reg = PLURegistry(table_path=path)
    assert reg.get_version() == "7"
    assert "94062" in reg
    assert reg.lookup("94062").to_dict() == {"code": "94062", "is_organic": True, "meaning": "Cucumber"}


def test_check_plu_table_script(tmp_path):
    """check_plu_table: shipped table passes; a contradicting table fails."""
    from scripts.check_plu_table import main, find_problems
    assert main([]) == 0
    bad = _write_table(tmp_path / "bad.json", {"94011": {"meaning": "Banana", "is_organic": False}})
    assert main([str(bad)]) == 1
    problems = find_problems({"4011": {"meaning": "Banana", "is_organic": False}})
    assert problems == ["4011: no organic counterpart 94011"]
