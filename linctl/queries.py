"""GraphQL documents sent to the Linear API."""

TEAM_BY_KEY = """
query TeamByKey($key: String!) {
  teams(filter: { key: { eq: $key } }) {
    nodes { id key name }
  }
}
"""

USER_BY_EMAIL = """
query UserByEmail($email: String!) {
  users(filter: { email: { eq: $email } }) {
    nodes { id name email }
  }
}
"""

ISSUE_TEAM = """
query IssueTeam($id: String!) {
  issue(id: $id) {
    id
    team { id }
  }
}
"""

ISSUE_BY_TEAM_AND_NUMBER = """
query IssueByNumber($teamId: ID!, $number: Float!) {
  issues(filter: { team: { id: { eq: $teamId } }, number: { eq: $number } }) {
    nodes { id team { id } }
  }
}
"""

TEAM_WORKFLOW_STATES = """
query TeamWorkflowStates($teamId: ID!) {
  workflowStates(filter: { team: { id: { eq: $teamId } } }) {
    nodes { id name type }
  }
}
"""

TEAM_PROJECTS = """
query TeamProjects($teamId: ID!) {
  projects(filter: { accessibleTeams: { id: { eq: $teamId } } }) {
    nodes { id name }
  }
}
"""

TEAM_LABELS = """
query TeamLabels($teamId: ID!) {
  issueLabels(filter: { team: { id: { eq: $teamId } } }) {
    nodes { id name }
  }
}
"""

ALL_PROJECTS = """
query AllProjects {
  projects {
    nodes { id name }
  }
}
"""

ALL_LABELS = """
query AllLabels {
  issueLabels {
    nodes { id name }
  }
}
"""

GET_ISSUE = """
query GetIssue($id: String!) {
  issue(id: $id) {
    id
    identifier
    title
    description
    url
    priority
    state { id name }
    assignee { id name email }
    team { id key name }
    labels { nodes { name } }
    updatedAt
  }
}
"""

ISSUES_BY_FILTER = """
query IssuesByFilter($filter: IssueFilter) {
  issues(filter: $filter) {
    nodes {
      identifier
      title
      priority
      state { name }
      project { name }
      labels { nodes { name } }
    }
  }
}
"""

LIST_TEAMS = """
query ListTeams {
  teams {
    nodes { id name key }
  }
}
"""

LIST_USERS = """
query ListUsers {
  users {
    nodes { id name email }
  }
}
"""

ISSUE_CREATE = """
mutation IssueCreate($input: IssueCreateInput!) {
  issueCreate(input: $input) {
    success
    issue { id identifier title }
  }
}
"""

ISSUE_UPDATE = """
mutation IssueUpdate($id: String!, $input: IssueUpdateInput!) {
  issueUpdate(id: $id, input: $input) {
    success
    issue { id identifier title }
  }
}
"""

ISSUE_DELETE = """
mutation IssueDelete($id: String!) {
  issueDelete(id: $id) { success }
}
"""

COMMENT_CREATE = """
mutation CommentCreate($input: CommentCreateInput!) {
  commentCreate(input: $input) {
    success
    comment { id }
  }
}
"""

WEBHOOK_CREATE = """
mutation WebhookCreate($input: WebhookCreateInput!) {
  webhookCreate(input: $input) {
    success
    webhook { id enabled url }
  }
}
"""

WEBHOOK_DELETE = """
mutation WebhookDelete($id: String!) {
  webhookDelete(id: $id) { success }
}
"""
