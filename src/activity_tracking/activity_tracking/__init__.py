"""ActivityTracking package.

Feature modules (users, tasks, expenses, dropdowns, imports, reports, ...)
each own a model, a repository interface with its MySQL implementation, a
service holding the business rules and a thin Flask controller.
"""
