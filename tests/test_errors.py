import pytest

from nodeapi.errors import (
    CodecError,
    MetadataConversionError,
    MetadataConversionErrorKind,
    MetadataError,
    MetadataErrorKind,
    NodeApiError,
    UnknownBytesError,
)


def test_metadata_error_equality_by_kind_and_details():
    a = MetadataError(MetadataErrorKind.PALLET_INDEX_NOT_FOUND, 3)
    b = MetadataError(MetadataErrorKind.PALLET_INDEX_NOT_FOUND, 3)
    c = MetadataError(MetadataErrorKind.PALLET_INDEX_NOT_FOUND, 4)
    assert a == b
    assert hash(a) == hash(b)
    assert not a == c


def test_metadata_error_message_uses_variant_name():
    err = MetadataError(MetadataErrorKind.PALLET_NAME_NOT_FOUND, "Balances")
    assert str(err) == 'PalletNameNotFound("Balances")'
    assert str(MetadataError(MetadataErrorKind.STORAGE_TYPE_ERROR)) == "StorageTypeError"


def test_metadata_error_two_details():
    err = MetadataError(MetadataErrorKind.ERROR_NOT_FOUND, 1, 2)
    assert err.details == (1, 2)
    assert err.kind is MetadataErrorKind.ERROR_NOT_FOUND


def test_metadata_error_wrong_arity_rejected():
    with pytest.raises(TypeError):
        MetadataError(MetadataErrorKind.STORAGE_TYPE_ERROR, 1)
    with pytest.raises(TypeError):
        MetadataError(MetadataErrorKind.ERROR_NOT_FOUND, 1)


def test_metadata_error_wrong_kind_type_rejected():
    with pytest.raises(TypeError):
        MetadataError(MetadataConversionErrorKind.INVALID_PREFIX)


def test_errors_share_base_class():
    meta_err = MetadataError(MetadataErrorKind.DISPATCH_ERROR_NOT_FOUND)
    conv_err = MetadataConversionError(MetadataConversionErrorKind.INVALID_VERSION)
    assert isinstance(meta_err, NodeApiError)
    assert isinstance(conv_err, NodeApiError)
    assert meta_err.kind is MetadataErrorKind.DISPATCH_ERROR_NOT_FOUND
    assert conv_err.kind is MetadataConversionErrorKind.INVALID_VERSION


def test_conversion_error_equality_and_message():
    a = MetadataConversionError(MetadataConversionErrorKind.TYPE_NAME_NOT_FOUND, "Address")
    b = MetadataConversionError(MetadataConversionErrorKind.TYPE_NAME_NOT_FOUND, "Call")
    assert a != b
    assert a == MetadataConversionError(MetadataConversionErrorKind.TYPE_NAME_NOT_FOUND, "Address")
    assert str(a) == 'TypeNameNotFound("Address")'


def test_different_error_classes_not_equal():
    a = MetadataError(MetadataErrorKind.STORAGE_TYPE_ERROR)
    b = MetadataConversionError(MetadataConversionErrorKind.INVALID_PREFIX)
    assert a != b


def test_unknown_bytes_keeps_data():
    err = UnknownBytesError(bytearray([1, 2, 3]))
    assert err.data == b"\x01\x02\x03"
    assert "010203" in str(err)


def test_codec_error_is_value_error():
    err = CodecError("bad bytes")
    assert isinstance(err, ValueError)
    assert isinstance(err, NodeApiError)
    assert "bad bytes" in str(err)