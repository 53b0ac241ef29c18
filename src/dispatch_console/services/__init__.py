"""
dispatch_console.services

The command pipeline: validate -> authorize -> persist -> broadcast.
"""
