"""
GraphQL documents used by the harvester.

Page sizes and targets are query variables without defaults; the caller
supplies them from its configuration. Keep ``normalizer`` in sync when a
field is added to ``REPOSITORY_FIELDS``.
"""

# nameWithOwner is required by the normalizer
REPOSITORY_FIELDS = """
fragment repositoryFields on Repository {
  name
  nameWithOwner
  homepageUrl
  isArchived
  isPrivate
  hasWikiEnabled
  hasIssuesEnabled
  pushedAt
  updatedAt
  createdAt
  mergeCommitAllowed
  squashMergeAllowed
  defaultBranch: defaultBranchRef {
    name
  }
  branchProtectionRules(first: $branchProtectionRulePageSize) {
    nodes {
      pattern
      requiredApprovingReviewCount
      requiredStatusCheckContexts
      isAdminEnforced
    }
  }
  milestones(first: $milestonePageSize) {
    nodes {
      title
      description
      state
      dueOn
      url
    }
  }
  labels(first: $labelPageSize) {
    totalCount
    pageInfo {
      hasNextPage
    }
    nodes {
      name
    }
  }
  codeOwners: object(expression: "HEAD:CODEOWNERS") {
    ... on Blob {
      text
    }
  }
  w3cJson: object(expression: "HEAD:w3c.json") {
    ... on Blob {
      text
    }
  }
  contributing: object(expression: "HEAD:CONTRIBUTING.md") {
    ... on Blob {
      text
    }
  }
  license: object(expression: "HEAD:LICENSE.md") {
    ... on Blob {
      text
    }
  }
  readme: object(expression: "HEAD:README.md") {
    ... on Blob {
      text
    }
  }
  codeOfConduct: object(expression: "HEAD:CODE_OF_CONDUCT.md") {
    ... on Blob {
      text
    }
  }
  preview: object(expression: "HEAD:.pr-preview.json") {
    ... on Blob {
      text
    }
  }
  travis: object(expression: "HEAD:.travis.yml") {
    ... on Blob {
      text
    }
  }
}
"""

REPOSITORIES_QUERY = """
query ($login: String!,
       $pageSize: Int!,
       $labelPageSize: Int!,
       $milestonePageSize: Int!,
       $branchProtectionRulePageSize: Int!,
       $endCursor: String) {
  organization(login: $login) {
    repositories(after: $endCursor, first: $pageSize) {
      pageInfo {
        endCursor
        hasNextPage
      }
      edges {
        node {
          ...repositoryFields
        }
      }
    }
  }
}
""" + REPOSITORY_FIELDS

REPOSITORY_QUERY = """
query ($owner: String!,
       $name: String!,
       $labelPageSize: Int!,
       $milestonePageSize: Int!,
       $branchProtectionRulePageSize: Int!) {
  repository(owner: $owner, name: $name) {
    ...repositoryFields
  }
}
""" + REPOSITORY_FIELDS

LABELS_QUERY = """
query ($owner: String!,
       $name: String!,
       $pageSize: Int!,
       $endCursor: String) {
  repository(owner: $owner, name: $name) {
    labels(after: $endCursor, first: $pageSize) {
      pageInfo {
        endCursor
        hasNextPage
      }
      edges {
        node {
          name
        }
      }
    }
  }
}
"""

CONNECTION_QUERY = """
query {
  viewer {
    login
  }
  rateLimit {
    remaining
    resetAt
  }
}
"""
