from __future__ import annotations

import pytest

from os_compute.openstack.compute import ComputeClient

AUTH_URL = "http://keystone.test:5000/v2.0"
TOKEN_URL = AUTH_URL + "/tokens"
TOKEN = "tok-123"
BASE_ONE = "http://nova-one.test:8774/v2/tenant"
BASE_TWO = "http://nova-two.test:8774/v2/tenant"


def token_response(token: str = TOKEN) -> dict:
    return {
        "access": {
            "token": {"id": token},
            "serviceCatalog": [
                {
                    "type": "identity",
                    "endpoints": [{"region": "RegionOne", "publicURL": AUTH_URL}],
                },
                {
                    "type": "compute",
                    "endpoints": [
                        {"region": "RegionOne", "publicURL": BASE_ONE + "/"},
                        {"region": "RegionTwo", "publicURL": BASE_TWO},
                    ],
                },
            ],
        }
    }


@pytest.fixture
def keystone(requests_mock):
    return requests_mock.post(TOKEN_URL, json=token_response())


@pytest.fixture
def client(keystone) -> ComputeClient:
    return ComputeClient(AUTH_URL, "alice", "secret", "demo", region="RegionOne")
