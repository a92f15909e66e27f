"""
Copyright (c) 2025 Eric C. Mumford (@heymumford)
This file is part of Casebook, licensed under the MIT License.
See LICENSE file for details.
"""

"""
Casebook - test case editor core
Builds, filters and exports test cases as canonical JSON, zip bundles and Allure results
"""

__version__ = "0.1.0"
