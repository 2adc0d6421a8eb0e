"""Payments bounded context — payment initialization and order settlement.

Starts hosted-checkout transactions with the payment provider, and turns a
verified transaction into exactly one Order per payment reference.
"""

from protean.domain import Domain

payments = Domain(name="payments")
