"""Authentication and authorization.

Learn: One authentication path — username/email + password (or a signed
wallet message) → signed session token → Bearer header. Every protected
route resolves the header to an Account, then runs whatever guards it
declares (role, resource ownership, wallet ownership). Repeated password
failures lock the account for a while (see lockout.py).
"""
