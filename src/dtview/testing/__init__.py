from dtview.testing.utils import assert_buffer_equal, read_all, sample_values

__all__ = ["assert_buffer_equal", "read_all", "sample_values"]
