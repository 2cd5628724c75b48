"""Bridge layer between the batch dispatcher and a partitioned transport.

Modules
-------
transport
    ``ProducerClient`` and ``EventBatch`` protocols the dispatcher depends on.
local_producer
    ``LocalProducer``: an in-process partitioned producer backed by
    in-memory deques or a SQLite file.
committer
    ``OffsetCommitter``: an in-memory commit handle.
"""
