"""
JWT credentials for gRPC servers.
"""
