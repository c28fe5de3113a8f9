"""Client library and CLI for driving a Salt API from automation pipelines."""
