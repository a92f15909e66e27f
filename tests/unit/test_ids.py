"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

import random
import re
import uuid
from unittest.mock import patch

import pytest

from casebook.core.ids import generate_uuid, now_ms, pseudo_uuid

UUID_V4 = re.compile(r"^[0-9a-f]{8}-[0-9a-f]{4}-4[0-9a-f]{3}-[89ab][0-9a-f]{3}-[0-9a-f]{12}$")


@pytest.mark.unit
class TestIdentifiers:
    def test_generate_uuid_is_canonical(self):
        value = generate_uuid()
        assert UUID_V4.match(value)
        assert str(uuid.UUID(value)) == value

    def test_generate_uuid_is_unique(self):
        assert len({generate_uuid() for _ in range(500)}) == 500

    def test_pseudo_uuid_shape(self):
        rng = random.Random(42)
        for _ in range(100):
            assert UUID_V4.match(pseudo_uuid(rng))

    def test_pseudo_uuid_is_deterministic_for_seed(self):
        assert pseudo_uuid(random.Random(7)) == pseudo_uuid(random.Random(7))

    def test_fallback_without_os_randomness(self):
        """Test that a host without os.urandom still gets identifiers."""
        with patch("casebook.core.ids.uuid.uuid4", side_effect=NotImplementedError):
            value = generate_uuid()
        assert UUID_V4.match(value)

    def test_now_ms(self):
        before = now_ms()
        assert isinstance(before, int)
        assert now_ms() >= before
        # milliseconds, not seconds
        assert before > 10**12
