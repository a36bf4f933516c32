"""Chat feature: the streaming relay between the browser and the model.

A turn is validated, recorded, sent upstream, and the model's output is
re-emitted as paced server-sent events while the full reply is accumulated
and saved once the upstream stream ends.
"""
