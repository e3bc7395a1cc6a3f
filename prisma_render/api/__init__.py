"""HTTP surface for the render studio"""
