# Copyright (c) 2025 Henru Wang
# All rights reserved.

"""Integration tests for end-to-end crawls of a mock C/C++ project."""
