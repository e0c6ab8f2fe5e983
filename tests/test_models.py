import pytest

from os_compute.errors import ValidationError
from os_compute.models import AuthState, Credentials, ImageCreate, ListQuery, ServerCreate, build


def test_server_create_body_order():
    req = build(ServerCreate, name="s1", flavor="f1", image="i1")
    assert list(req.to_body()["server"]) == ["name", "imageRef", "flavorRef"]
    assert req.to_body() == {"server": {"name": "s1", "imageRef": "i1", "flavorRef": "f1"}}


@pytest.mark.parametrize("missing", ["name", "flavor", "image"])
def test_server_create_requires_every_field(missing):
    data = {"name": "s1", "flavor": "f1", "image": "i1"}
    data[missing] = None
    with pytest.raises(ValidationError, match=f"{missing} param is required"):
        build(ServerCreate, **data)


def test_omitted_field_is_reported_as_required():
    with pytest.raises(ValidationError, match="image param is required"):
        build(ServerCreate, name="s1", flavor="f1")


def test_image_create_defaults_meta_to_empty():
    req = build(ImageCreate, name="img1", server="42", meta=None)
    assert req.to_body() == {"createImage": {"name": "img1", "metadata": {}}}


@pytest.mark.parametrize("meta", [["a", "b"], "a=b", {1: "x"}])
def test_image_create_rejects_non_mapping_meta(meta):
    with pytest.raises(ValidationError, match="meta param must be a mapping"):
        build(ImageCreate, name="img1", server="42", meta=meta)


def test_validation_error_is_a_value_error():
    with pytest.raises(ValueError):
        build(ImageCreate, name="", server="42")


def test_list_query_suffix():
    assert ListQuery().suffix == "/detail"
    assert ListQuery(detail=False).suffix == ""


def test_credentials_are_immutable():
    creds = Credentials(auth_url="http://x", user="u", password="hunter2", project_id="p1")
    assert creds.region is None
    with pytest.raises(Exception):
        creds.user = "other"
    assert "hunter2" not in repr(creds)


def test_auth_state_strips_trailing_slash():
    assert AuthState(token="t", base_url="http://nova/v2/x/").base_url == "http://nova/v2/x"


def test_numeric_fields_are_coerced_to_strings():
    req = build(ServerCreate, name="s1", flavor=1, image=2)
    assert req.flavor == "1"
    assert req.image == "2"
    assert build(ImageCreate, name="img", server=42, meta={"size": 10}).to_body() == {
        "createImage": {"name": "img", "metadata": {"size": "10"}}
    }


def test_image_create_rejects_non_string_meta_values():
    with pytest.raises(ValidationError, match="meta param must be a mapping"):
        build(ImageCreate, name="img", server="42", meta={"when": object()})


def test_list_query_treats_none_as_no_detail():
    assert build(ListQuery, detail=None).suffix == ""
