"""
Serving Module

HTTP access to the fact store, the product sales mart and the reports.
"""
