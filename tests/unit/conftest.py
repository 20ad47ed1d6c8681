from __future__ import annotations

import pytest

from gateway_fakes import FakeAuthorizer, Gateway
from taxgateway.core.ports import Unauthorized


@pytest.fixture
def gateway() -> Gateway:
    return Gateway()


@pytest.fixture
def unauthorised_gateway() -> Gateway:
    return Gateway(authorizer=FakeAuthorizer(Unauthorized("no bearer token")))
