"""Core building blocks: element kinds, buffers, views, accessors, codecs and index mappings."""
