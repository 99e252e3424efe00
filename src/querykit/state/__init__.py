"""State layer.

Cache entries are owned by a store and change only by folding the lifecycle
events the executors emit. The engine reads entries but never writes them.
"""
