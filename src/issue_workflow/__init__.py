"""Issue workflow: retry-driven processing of newly opened GitHub issues.

A queued webhook event is parsed into a WorkItem, a feature branch is
created, a tech lead agent analyses the issue, and the outcome is recorded
on the issue as comments and ``workflow:<status>`` labels.
"""
