"""Common type aliases for the Timeboard backend."""
from typing import Any

# A single row of a store table (field_name -> value)
Row = dict[str, Any]

# Domain record aliases
EmployeeRecord = dict[str, Any]
ProjectRecord = dict[str, Any]
ActivityRecord = dict[str, Any]

# List aliases
EmployeeList = list[EmployeeRecord]
ProjectList = list[ProjectRecord]
ActivityList = list[ActivityRecord]
RowList = list[Row]
