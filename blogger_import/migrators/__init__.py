"""
Local persistence for imported content.

This subpackage stores converted posts, pages, comments and labels as JSON
files, keeps the mapping from Blogger ids to local ids and indexes already
imported media by source URL.
"""
