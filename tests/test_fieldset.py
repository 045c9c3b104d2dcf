import pytest

from scancore.fieldset import (
    MAX_FIELDS,
    FieldDef,
    FieldDefSet,
    FieldSet,
    FieldsetError,
    FieldType,
    generate_full_translation,
    generate_translation,
    sanitize_utf8,
    translate_fieldset,
)


def _defs():
    avail = FieldDefSet()
    avail.extend(
        [
            FieldDef("saddr", "string", "source address"),
            FieldDef("sport", "int", "source port"),
            FieldDef("success", "bool", "is response"),
        ]
    )
    return avail


def _record():
    fs = FieldSet()
    fs.add_string("saddr", "192.0.2.1")
    fs.add_uint64("sport", 443)
    fs.add_bool("success", True)
    return fs


def test_add_and_get_by_index():
    fs = _record()
    assert len(fs) == 3
    assert fs.get_string_by_index(0) == "192.0.2.1"
    assert fs.get_uint64_by_index(1) == 443
    assert fs.get_uint64_by_index(2) == 1
    assert [f.type for f in fs.fields] == [FieldType.STRING, FieldType.UINT64, FieldType.BOOL]


def test_get_wrong_type_raises():
    fs = _record()
    with pytest.raises(FieldsetError):
        fs.get_uint64_by_index(0)
    with pytest.raises(FieldsetError):
        fs.get_string_by_index(1)


def test_uint64_wraps_like_unsigned():
    fs = FieldSet()
    fs.add_uint64("n", -1)
    assert fs.get_uint64_by_index(0) == 2**64 - 1


def test_field_type_codes():
    fs = _record()
    fs.add_null("empty")
    assert [int(f.type) for f in fs.fields] == [1, 2, 7, 4]


def test_repeated_type_mismatch():
    rep = FieldSet.repeated(FieldType.UINT64)
    rep.add_uint64("", 1)
    with pytest.raises(FieldsetError):
        rep.add_string("", "x")
    assert len(rep) == 1


def test_repeated_requires_inner_type():
    with pytest.raises(FieldsetError):
        FieldSet(FieldType.REPEATED)


def test_capacity_limit():
    fs = FieldSet()
    for i in range(MAX_FIELDS - 1):
        fs.add_null(f"f{i}")
    assert len(fs) == MAX_FIELDS - 1
    with pytest.raises(FieldsetError):
        fs.add_null("overflow")


def test_modify_existing_and_missing():
    fs = _record()
    fs.modify_uint64("sport", 80)
    assert len(fs) == 3
    assert fs.get_uint64_by_index(1) == 80
    fs.modify_string("sport", "http")
    assert fs.fields[1].type == FieldType.STRING
    assert fs.get_string_by_index(1) == "http"
    fs.modify_binary("payload", b"\x00\x01")
    assert len(fs) == 4
    assert fs.fields[3].value == b"\x00\x01"
    fs.modify_null("saddr")
    assert fs.fields[0].type == FieldType.NULL
    fs.modify_bool("success", 0)
    assert fs.get_uint64_by_index(2) == 0


def test_chkadd_none_becomes_null():
    fs = FieldSet()
    fs.chkadd_string("a", None)
    fs.chkadd_string("b", "text")
    fs.chkadd_unsafe_string("c", None)
    assert [f.type for f in fs.fields] == [FieldType.NULL, FieldType.STRING, FieldType.NULL]
    assert fs.get_string_by_index(0) is None
    assert fs.get_string_by_index(1) == "text"


def test_sanitize_valid_passthrough():
    text = "héllo wörld"
    assert sanitize_utf8(text.encode("utf-8")) == text


def test_sanitize_replaces_each_invalid_byte():
    assert sanitize_utf8(b"ab\xffcd") == "ab\ufffdcd"
    assert sanitize_utf8(b"\xe2\x82") == "\ufffd\ufffd"


def test_sanitize_result_is_encodable_and_keeps_valid_parts():
    data = b"ok\x80\xfe\xe2\x82\xacend"
    result = sanitize_utf8(data)
    result.encode("utf-8")
    assert result.startswith("ok")
    assert result.endswith("\u20acend")


def test_add_unsafe_string_sanitizes_bytes():
    fs = FieldSet()
    fs.add_unsafe_string("banner", b"ab\xffcd")
    fs.add_unsafe_string("plain", "fine")
    assert fs.get_string_by_index(0) == sanitize_utf8(b"ab\xffcd")
    assert fs.get_string_by_index(1) == "fine"


def test_nested_fieldsets():
    fs = FieldSet()
    child = FieldSet()
    child.add_uint64("ttl", 64)
    rep = FieldSet.repeated(FieldType.STRING)
    rep.add_string("", "a")
    fs.add_fieldset("ip", child)
    fs.add_repeated("names", rep)
    assert fs.fields[0].type == FieldType.FIELDSET
    assert fs.fields[0].value.get_uint64_by_index(0) == 64
    assert fs.fields[1].value.get_string_by_index(0) == "a"


def test_fielddefset_extend_and_lookup():
    avail = _defs()
    assert len(avail) == 3
    assert avail.index_by_name("sport") == 1
    assert avail.index_by_name("missing") is None


def test_fielddefset_overflow():
    avail = FieldDefSet()
    avail.extend(FieldDef(f"f{i}", "int") for i in range(MAX_FIELDS))
    with pytest.raises(FieldsetError):
        avail.extend([FieldDef("extra", "int")])
    assert len(avail) == MAX_FIELDS


def test_translation_reorders_fields():
    avail = _defs()
    translation = generate_translation(avail, ["success", "saddr"])
    assert translation.indices == (2, 0)
    out = translate_fieldset(_record(), translation)
    assert [f.name for f in out.fields] == ["success", "saddr"]
    assert out.get_string_by_index(1) == "192.0.2.1"


def test_translation_missing_field_raises():
    with pytest.raises(FieldsetError):
        generate_translation(_defs(), ["nope"])


def test_full_translation_is_identity():
    avail = _defs()
    translation = generate_full_translation(avail)
    assert translation.indices == (0, 1, 2)
    record = _record()
    out = translate_fieldset(record, translation)
    assert out.fields == record.fields
    assert out is not record