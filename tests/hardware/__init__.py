"""
Hardware tests package.

Contains tests that require actual robot hardware and human confirmation.
These tests are marked with @pytest.mark.hardware and are only executed
when the --run-hardware flag is provided.
"""
