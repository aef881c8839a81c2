"""Media attachment pipeline.

Uploads are accepted by AttachmentLifecycleManager.ingest() and processed
by advance(), which derives metadata, a thumbnail and a perceptual hash
(fedicore.media.derivation) and writes them through a StorageAdapter.
"""
