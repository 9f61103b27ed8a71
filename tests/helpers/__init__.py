# SPDX-License-Identifier: MIT
# Copyright (c) 2025 OmniNode Team
"""Shared test helpers for envelope_rpc tests."""
