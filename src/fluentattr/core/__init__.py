"""
Core of fluentattr: lexer, item syntax, attribute arguments, the
configuration protocol and the mutator model.
"""
