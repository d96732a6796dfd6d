import pytest

from nodeapi.rpc_params import RpcParams


def test_default_params_returns_none():
    params = RpcParams()
    assert params.build() is None


def test_insert_single_param_works():
    params = RpcParams()
    params.insert(0)
    assert params.build() == "[0]"


def test_insert_multiple_params_works():
    params = RpcParams()
    params.insert(0)
    params.insert(0)
    assert params.build() == "[0,0]"


def test_insert_with_allocation_multiple_params_works():
    params = RpcParams()
    params.insert_with_allocation(0)
    params.insert_with_allocation(0)
    assert params.build() == "[0,0]"


def test_to_json_value_of_empty_params_is_null_list():
    assert RpcParams().to_json_value() == [None]


def test_to_json_value_round_trips_inserted_values():
    params = RpcParams()
    params.insert("0xabc")
    params.insert({"key": [1, 2]})
    params.insert(None)
    assert params.to_json_value() == ["0xabc", {"key": [1, 2]}, None]


def test_build_is_compact_json():
    params = RpcParams()
    params.insert({"a": 1})
    params.insert([1, 2])
    assert params.build() == '[{"a":1},[1,2]]'


def test_non_serialisable_value_raises():
    params = RpcParams()
    with pytest.raises(TypeError):
        params.insert(object())
    assert params.build() is None


def test_non_finite_float_becomes_null():
    params = RpcParams()
    params.insert(float("nan"))
    assert params.to_json_value() == [None]