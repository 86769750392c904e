"""
API package - HTTP surface of the stock ledger
"""
