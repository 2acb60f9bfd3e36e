"""
MetaForm: declarative questionnaire engine.

A form is an ordered set of sections and questions, each question holding
one or more input controls. Three parts do the work:

    rules        named boolean predicates deciding what is visible
    navigation   walks questions/sections forwards and backwards,
                 skipping whatever the rules hide
    validation   per-control checks, including checks that read other
                 answers, with re-validation cascading to dependants

FormSession is the surface a UI binding layer talks to.

This package contains ZERO knowledge of:
    - UI rendering
    - Persisting form definitions
"""

__version__ = "0.1.0"
