"""
Encrypted Debt Ledger - Source Package

A confidential debt registry: amounts are admitted as ciphertexts,
amortized homomorphically, and disclosed exactly once through a
verified decryption proof.

DESIGN PRINCIPLES:
1. The amount never leaves the encryption boundary until a committee proves its opening
2. Fail early, fail visibly (typed errors, no partial state)
3. Disclosure happens at most once per record
4. Every state change is auditable
5. The encryption backend is swappable
"""

__version__ = "1.0.0"
__author__ = "Encrypted Debt Ledger Team"
