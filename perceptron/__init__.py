"""
perceptron package
~~~~~~~~~~~~~~~~~~

Multilayer perceptron training engine.
Contains the matrix engine, activations, the network implementation
with online backpropagation, model persistence and reporting helpers.
"""

__version__ = "1.0.0"
