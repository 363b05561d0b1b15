"""
evo2048: neuroevolution of networks that play a sliding-tile merging game.
"""
__version__ = '0.1.0'
