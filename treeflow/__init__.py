"""
Treeflow: dependency-graph task execution.

Provides unified interfaces for:
- Building task graphs with declared dependencies
- Ordering them into parallel execution waves
- Running waves on a bounded worker pool
- Converting rooted-tree level sequences to and from task graphs
"""
