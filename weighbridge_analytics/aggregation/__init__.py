"""Record-to-statistics reductions.

Modules
-------
period      — dwell time, quality grading, dynamic target, PeriodStats.
daily       — DailyAggregate series and daily weight history.
breakdowns  — location totals, peak hours, grade-C issues, vehicle stats.
comparison  — period-over-period KPI deltas.
"""
