'''
Release Report Generator

Creates a release-report (markdown) for a git repository, consisting of

- a changelog, built from all commits between the latest tag and the trunk branch whose subject
  follows the commit-message convention `type(scope)!: [TICKET-123] message`
- a schema script, concatenating the current contents of all schema files (e.g. `*.sql`) that
  changed since the latest tag

The latest tag is the one pointing to the most recently committed commit, regardless of its name.
'''
