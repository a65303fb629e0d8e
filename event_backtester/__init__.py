"""
Event Backtester
----------------
Historical event-relative return studies on daily closes.
Maps recurring calendar events onto trading sessions, measures entry/exit
returns in session offsets, and aggregates mean, stdev and win rate.
"""
