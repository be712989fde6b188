"""Employee Onboarding Intake Pipeline.

A resumable multi-step wizard engine that captures identity documents,
normalizes recognized fields, drives completion of the I-9 and W-4 forms,
collects pressure-aware signatures, and produces an immutable submission
receipt.
"""
