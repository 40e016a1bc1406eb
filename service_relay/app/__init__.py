"""
Housecat relay service.

Builds ClickHouse SQL from structured desktop-client requests, dispatches it
over ClickHouse's HTTP interface and normalizes the replies into a uniform
columns + rows shape.
"""
