"""
Business services: scheduled task execution, price alerts, price history
and the tracking cycle that runs them together.
"""
