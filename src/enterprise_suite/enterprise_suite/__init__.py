"""Enterprise Suite package.

Organized by feature modules (tenancy, subscriptions, modules, daily_works,
objections, leaves, events, attendance, ...) with a thin Flask controller
layer on top of service/repository layers.
"""
