class TicketAlreadyOpen(Exception):
  def __init__(self, user_id, ticket=None):
    super().__init__(f"User {user_id} already has an open ticket")
    self.user_id = user_id
    self.ticket = ticket
class TicketLimitReached(Exception):
  def __init__(self, limit):
    super().__init__(f"Ticket limit of {limit} reached")
    self.limit = limit
class TicketNotFound(Exception):
  pass
class NotATicketChannel(Exception):
  pass
class MissingStaffPermissions(Exception):
  pass
class MissingManageGuild(Exception):
  pass
class FeatureDisabled(Exception):
  pass
class UpstreamError(Exception):
  pass
