"""Job synthesis from selection rows."""
