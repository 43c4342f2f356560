"""blowcrypt unittests"""
