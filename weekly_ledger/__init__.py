"""
Weekly Ledger

Party payments bucketed by ISO week, in two shapes:
- Day buckets (one entry per date) and range buckets (non-overlapping ranges)
- Bulk merge that keeps settlement annotations set out of band
- Settlement annotation toggle with a deterministic non-zero tie-break
- Window summaries with exact-week gating of week-scoped figures
"""

__version__ = "0.1.0"
