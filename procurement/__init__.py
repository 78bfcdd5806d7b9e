"""Procurement line items: requisitions, purchase orders and supplier bids."""
