"""UniHub campus workflow package.

Organized by feature modules (rbac, org, attendance, leaves, tasks, ...) with a
thin Flask controller layer over service/repository layers.
"""
