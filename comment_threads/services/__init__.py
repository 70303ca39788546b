# Services package.
#
#   thread_service: comment creation, deletion and paginated thread reads
#   user_service: user records and the UserDirectory used by threads
#   media_service: media records and the MediaCatalog used by threads
#
# Services receive an AsyncSession from the router layer.  The thread
# service commits its own writes so that cache invalidation and events
# only happen after the unit of work is durable.  Media visibility changes
# follow the same rule.  Plain collaborator creates flush and leave the
# commit to ``get_db``.
