"""
Elastic Beanstalk entry point for the price plan API
"""
import sys
import os

# EB runs this file from the bundle root, which must be importable as "backend"
sys.path.insert(0, os.path.dirname(os.path.abspath(__file__)))

from backend.app import app as application

if __name__ == "__main__":
    application.run(debug=True)
