"""Risk-assessment lifecycle core: scoring, approval workflow and LMRA gate."""
