"""
Admin accounts, license issuance and the admin session coordinator.
"""
